from servicedesk.core.config import settings
from servicedesk.core.database import get_db, Base, get_db_session
from servicedesk.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    decode_token,
    generate_opaque_token,
    hash_token,
)
