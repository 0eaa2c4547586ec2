"""
Settings routes

Reference data (test types, sample types, standards, price lists, distance
rates, mixer types, lookup tables) and runtime system settings. Everything
needs settings:* permissions except GET /system/public.
"""
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.api.deps import get_request_ip, get_user_agent
from servicedesk.core.database import get_db
from servicedesk.core.permissions import Permission, require_permission
from servicedesk.core.principal import Principal
from servicedesk.models.enums import ServiceCategory, StandardType
from servicedesk.schemas import settings as schemas
from servicedesk.schemas.common import MessageResponse, bilingual
from servicedesk.services.audit_service import AuditService
from servicedesk.services.lookup_service import LookupService, active_children
from servicedesk.services.system_setting_service import SystemSettingService

router = APIRouter()

can_read = require_permission(Permission.SETTINGS_READ)
can_create = require_permission(Permission.SETTINGS_CREATE)
can_update = require_permission(Permission.SETTINGS_UPDATE)
can_delete = require_permission(Permission.SETTINGS_DELETE)


def _client(request: Request, principal: Principal) -> dict:
    return {
        "principal": principal,
        "ip_address": get_request_ip(request),
        "user_agent": get_user_agent(request),
    }


def _test_type_response(test_type, include_inactive: bool = True) -> schemas.TestTypeResponse:
    response = schemas.TestTypeResponse.model_validate(test_type)
    response.samples = [
        schemas.SampleTypeSummary.model_validate(sample)
        for sample in active_children(test_type.samples, include_inactive)
    ]
    return response


def _price_list_response(price_list, include_inactive: bool = True) -> schemas.PriceListResponse:
    response = schemas.PriceListResponse.model_validate(price_list)
    response.items = [
        schemas.PriceListItemResponse.model_validate(item)
        for item in active_children(price_list.items, include_inactive)
    ]
    return response


def _category_response(category, include_inactive: bool = True) -> schemas.LookupCategoryResponse:
    response = schemas.LookupCategoryResponse.model_validate(category)
    response.items = [
        schemas.LookupItemResponse.model_validate(item)
        for item in active_children(category.items, include_inactive)
    ]
    return response


# ============================================================================
# TEST TYPES
# ============================================================================

@router.get("/test-types", response_model=List[schemas.TestTypeResponse])
async def list_test_types(
    category: Optional[ServiceCategory] = None,
    include_inactive: bool = False,
    principal: Principal = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    test_types = await LookupService(db).list_test_types(category=category, include_inactive=include_inactive)
    return [_test_type_response(test_type, include_inactive) for test_type in test_types]


@router.get("/test-types/{test_type_id}", response_model=schemas.TestTypeResponse)
async def get_test_type(test_type_id: str, principal: Principal = Depends(can_read), db: AsyncSession = Depends(get_db)):
    return _test_type_response(await LookupService(db).get_test_type(test_type_id))


@router.post("/test-types", response_model=schemas.TestTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_test_type(
    request: Request,
    data: schemas.TestTypeCreate,
    principal: Principal = Depends(can_create),
    db: AsyncSession = Depends(get_db),
):
    test_type = await LookupService(db).create_test_type(data)
    await AuditService(db).log_create(
        "TestType", test_type.id, new_values={"code": test_type.code, "name": test_type.name},
        **_client(request, principal),
    )
    return _test_type_response(test_type)


@router.patch("/test-types/{test_type_id}", response_model=schemas.TestTypeResponse)
async def update_test_type(
    request: Request,
    test_type_id: str,
    data: schemas.TestTypeUpdate,
    principal: Principal = Depends(can_update),
    db: AsyncSession = Depends(get_db),
):
    test_type = await LookupService(db).update_test_type(test_type_id, data)
    await AuditService(db).log_update(
        "TestType", test_type.id, new_values=data.model_dump(exclude_unset=True, mode="json"),
        **_client(request, principal),
    )
    return _test_type_response(test_type)


@router.delete("/test-types/{test_type_id}", response_model=MessageResponse)
async def delete_test_type(
    request: Request,
    test_type_id: str,
    principal: Principal = Depends(can_delete),
    db: AsyncSession = Depends(get_db),
):
    test_type = await LookupService(db).delete_test_type(test_type_id)
    await AuditService(db).log_delete(
        "TestType", test_type_id, old_values={"code": test_type.code}, **_client(request, principal)
    )
    return bilingual("Test type deleted")


# ============================================================================
# SAMPLE TYPES
# ============================================================================

@router.get("/sample-types", response_model=List[schemas.SampleTypeResponse])
async def list_sample_types(
    test_type_id: Optional[str] = None,
    include_inactive: bool = False,
    principal: Principal = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    sample_types = await LookupService(db).list_sample_types(
        test_type_id=test_type_id, include_inactive=include_inactive
    )
    return [schemas.SampleTypeResponse.model_validate(sample_type) for sample_type in sample_types]


@router.get("/sample-types/{sample_type_id}", response_model=schemas.SampleTypeResponse)
async def get_sample_type(
    sample_type_id: str, principal: Principal = Depends(can_read), db: AsyncSession = Depends(get_db)
):
    return schemas.SampleTypeResponse.model_validate(await LookupService(db).get_sample_type(sample_type_id))


@router.post("/sample-types", response_model=schemas.SampleTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_sample_type(
    request: Request,
    data: schemas.SampleTypeCreate,
    principal: Principal = Depends(can_create),
    db: AsyncSession = Depends(get_db),
):
    sample_type = await LookupService(db).create_sample_type(data)
    await AuditService(db).log_create(
        "SampleType", sample_type.id, new_values={"code": sample_type.code, "test_type_id": data.test_type_id},
        **_client(request, principal),
    )
    return schemas.SampleTypeResponse.model_validate(sample_type)


@router.patch("/sample-types/{sample_type_id}", response_model=schemas.SampleTypeResponse)
async def update_sample_type(
    request: Request,
    sample_type_id: str,
    data: schemas.SampleTypeUpdate,
    principal: Principal = Depends(can_update),
    db: AsyncSession = Depends(get_db),
):
    sample_type = await LookupService(db).update_sample_type(sample_type_id, data)
    await AuditService(db).log_update(
        "SampleType", sample_type.id, new_values=data.model_dump(exclude_unset=True, mode="json"),
        **_client(request, principal),
    )
    return schemas.SampleTypeResponse.model_validate(sample_type)


@router.delete("/sample-types/{sample_type_id}", response_model=MessageResponse)
async def delete_sample_type(
    request: Request,
    sample_type_id: str,
    principal: Principal = Depends(can_delete),
    db: AsyncSession = Depends(get_db),
):
    sample_type = await LookupService(db).delete_sample_type(sample_type_id)
    await AuditService(db).log_delete(
        "SampleType", sample_type_id, old_values={"code": sample_type.code}, **_client(request, principal)
    )
    return bilingual("Sample type deleted")


# ============================================================================
# STANDARDS
# ============================================================================

@router.get("/standards", response_model=List[schemas.StandardResponse])
async def list_standards(
    type: Optional[StandardType] = None,
    include_inactive: bool = False,
    principal: Principal = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    standards = await LookupService(db).list_standards(type=type, include_inactive=include_inactive)
    return [schemas.StandardResponse.model_validate(standard) for standard in standards]


@router.get("/standards/{standard_id}", response_model=schemas.StandardResponse)
async def get_standard(standard_id: str, principal: Principal = Depends(can_read), db: AsyncSession = Depends(get_db)):
    return schemas.StandardResponse.model_validate(await LookupService(db).get_standard(standard_id))


@router.post("/standards", response_model=schemas.StandardResponse, status_code=status.HTTP_201_CREATED)
async def create_standard(
    request: Request,
    data: schemas.StandardCreate,
    principal: Principal = Depends(can_create),
    db: AsyncSession = Depends(get_db),
):
    standard = await LookupService(db).create_standard(data)
    await AuditService(db).log_create(
        "Standard", standard.id, new_values={"code": standard.code, "type": standard.type.value},
        **_client(request, principal),
    )
    return schemas.StandardResponse.model_validate(standard)


@router.patch("/standards/{standard_id}", response_model=schemas.StandardResponse)
async def update_standard(
    request: Request,
    standard_id: str,
    data: schemas.StandardUpdate,
    principal: Principal = Depends(can_update),
    db: AsyncSession = Depends(get_db),
):
    standard = await LookupService(db).update_standard(standard_id, data)
    await AuditService(db).log_update(
        "Standard", standard.id, new_values=data.model_dump(exclude_unset=True, mode="json"),
        **_client(request, principal),
    )
    return schemas.StandardResponse.model_validate(standard)


@router.delete("/standards/{standard_id}", response_model=MessageResponse)
async def delete_standard(
    request: Request,
    standard_id: str,
    principal: Principal = Depends(can_delete),
    db: AsyncSession = Depends(get_db),
):
    standard = await LookupService(db).delete_standard(standard_id)
    await AuditService(db).log_delete(
        "Standard", standard_id, old_values={"code": standard.code}, **_client(request, principal)
    )
    return bilingual("Standard deleted")


# ============================================================================
# PRICE LISTS
# ============================================================================

@router.get("/price-lists", response_model=List[schemas.PriceListResponse])
async def list_price_lists(
    category: Optional[ServiceCategory] = None,
    include_inactive: bool = False,
    principal: Principal = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    price_lists = await LookupService(db).list_price_lists(category=category, include_inactive=include_inactive)
    return [_price_list_response(price_list, include_inactive) for price_list in price_lists]


@router.get("/price-lists/current", response_model=schemas.PriceListResponse)
async def get_current_price_list(
    category: ServiceCategory,
    principal: Principal = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    """Active default price list in force now for a category; active items only."""
    return _price_list_response(await LookupService(db).current_price_list(category), include_inactive=False)


@router.get("/price-lists/{price_list_id}", response_model=schemas.PriceListResponse)
async def get_price_list(
    price_list_id: str, principal: Principal = Depends(can_read), db: AsyncSession = Depends(get_db)
):
    return _price_list_response(await LookupService(db).get_price_list(price_list_id))


@router.post("/price-lists", response_model=schemas.PriceListResponse, status_code=status.HTTP_201_CREATED)
async def create_price_list(
    request: Request,
    data: schemas.PriceListCreate,
    principal: Principal = Depends(can_create),
    db: AsyncSession = Depends(get_db),
):
    price_list = await LookupService(db).create_price_list(data)
    await AuditService(db).log_create(
        "PriceList", price_list.id,
        new_values={"code": price_list.code, "category": price_list.category.value, "items": len(data.items)},
        **_client(request, principal),
    )
    return _price_list_response(price_list)


@router.patch("/price-lists/{price_list_id}", response_model=schemas.PriceListResponse)
async def update_price_list(
    request: Request,
    price_list_id: str,
    data: schemas.PriceListUpdate,
    principal: Principal = Depends(can_update),
    db: AsyncSession = Depends(get_db),
):
    price_list = await LookupService(db).update_price_list(price_list_id, data)
    await AuditService(db).log_update(
        "PriceList", price_list.id, new_values=data.model_dump(exclude_unset=True, mode="json"),
        **_client(request, principal),
    )
    return _price_list_response(price_list)


@router.delete("/price-lists/{price_list_id}", response_model=MessageResponse)
async def delete_price_list(
    request: Request,
    price_list_id: str,
    principal: Principal = Depends(can_delete),
    db: AsyncSession = Depends(get_db),
):
    price_list = await LookupService(db).delete_price_list(price_list_id)
    await AuditService(db).log_delete(
        "PriceList", price_list_id, old_values={"code": price_list.code}, **_client(request, principal)
    )
    return bilingual("Price list deleted")


@router.post(
    "/price-lists/{price_list_id}/items",
    response_model=schemas.PriceListItemResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_price_list_item(
    request: Request,
    price_list_id: str,
    data: schemas.PriceListItemCreate,
    principal: Principal = Depends(can_create),
    db: AsyncSession = Depends(get_db),
):
    item = await LookupService(db).add_price_list_item(price_list_id, data)
    await AuditService(db).log_create(
        "PriceListItem", item.id, new_values={"price_list_id": price_list_id, "code": item.code, "price": str(item.price)},
        **_client(request, principal),
    )
    return schemas.PriceListItemResponse.model_validate(item)


@router.patch("/price-list-items/{item_id}", response_model=schemas.PriceListItemResponse)
async def update_price_list_item(
    request: Request,
    item_id: str,
    data: schemas.PriceListItemUpdate,
    principal: Principal = Depends(can_update),
    db: AsyncSession = Depends(get_db),
):
    item = await LookupService(db).update_price_list_item(item_id, data)
    await AuditService(db).log_update(
        "PriceListItem", item.id, new_values=data.model_dump(exclude_unset=True, mode="json"),
        **_client(request, principal),
    )
    return schemas.PriceListItemResponse.model_validate(item)


@router.delete("/price-list-items/{item_id}", response_model=MessageResponse)
async def delete_price_list_item(
    request: Request,
    item_id: str,
    principal: Principal = Depends(can_delete),
    db: AsyncSession = Depends(get_db),
):
    item = await LookupService(db).delete_price_list_item(item_id)
    await AuditService(db).log_delete(
        "PriceListItem", item_id, old_values={"code": item.code}, **_client(request, principal)
    )
    return bilingual("Price list item deleted")


# ============================================================================
# DISTANCE RATES
# ============================================================================

@router.get("/distance-rates", response_model=List[schemas.DistanceRateResponse])
async def list_distance_rates(
    include_inactive: bool = False,
    principal: Principal = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    rates = await LookupService(db).list_distance_rates(include_inactive=include_inactive)
    return [schemas.DistanceRateResponse.model_validate(rate) for rate in rates]


@router.get("/distance-rates/quote", response_model=schemas.DistanceQuote)
async def quote_distance(
    km: Decimal = Query(..., ge=0),
    principal: Principal = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    return schemas.DistanceQuote(**await LookupService(db).quote_distance(km))


@router.get("/distance-rates/{rate_id}", response_model=schemas.DistanceRateResponse)
async def get_distance_rate(rate_id: str, principal: Principal = Depends(can_read), db: AsyncSession = Depends(get_db)):
    return schemas.DistanceRateResponse.model_validate(await LookupService(db).get_distance_rate(rate_id))


@router.post("/distance-rates", response_model=schemas.DistanceRateResponse, status_code=status.HTTP_201_CREATED)
async def create_distance_rate(
    request: Request,
    data: schemas.DistanceRateCreate,
    principal: Principal = Depends(can_create),
    db: AsyncSession = Depends(get_db),
):
    rate = await LookupService(db).create_distance_rate(data)
    await AuditService(db).log_create(
        "DistanceRate", rate.id, new_values=data.model_dump(mode="json"), **_client(request, principal)
    )
    return schemas.DistanceRateResponse.model_validate(rate)


@router.patch("/distance-rates/{rate_id}", response_model=schemas.DistanceRateResponse)
async def update_distance_rate(
    request: Request,
    rate_id: str,
    data: schemas.DistanceRateUpdate,
    principal: Principal = Depends(can_update),
    db: AsyncSession = Depends(get_db),
):
    rate = await LookupService(db).update_distance_rate(rate_id, data)
    await AuditService(db).log_update(
        "DistanceRate", rate.id, new_values=data.model_dump(exclude_unset=True, mode="json"),
        **_client(request, principal),
    )
    return schemas.DistanceRateResponse.model_validate(rate)


@router.delete("/distance-rates/{rate_id}", response_model=MessageResponse)
async def delete_distance_rate(
    request: Request,
    rate_id: str,
    principal: Principal = Depends(can_delete),
    db: AsyncSession = Depends(get_db),
):
    rate = await LookupService(db).delete_distance_rate(rate_id)
    await AuditService(db).log_delete(
        "DistanceRate", rate_id, old_values={"from_km": rate.from_km, "to_km": rate.to_km},
        **_client(request, principal),
    )
    return bilingual("Distance rate deleted")


# ============================================================================
# MIXER TYPES
# ============================================================================

@router.get("/mixer-types", response_model=List[schemas.MixerTypeResponse])
async def list_mixer_types(
    include_inactive: bool = False,
    principal: Principal = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    mixer_types = await LookupService(db).list_mixer_types(include_inactive=include_inactive)
    return [schemas.MixerTypeResponse.model_validate(mixer_type) for mixer_type in mixer_types]


@router.get("/mixer-types/{mixer_type_id}", response_model=schemas.MixerTypeResponse)
async def get_mixer_type(
    mixer_type_id: str, principal: Principal = Depends(can_read), db: AsyncSession = Depends(get_db)
):
    return schemas.MixerTypeResponse.model_validate(await LookupService(db).get_mixer_type(mixer_type_id))


@router.post("/mixer-types", response_model=schemas.MixerTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_mixer_type(
    request: Request,
    data: schemas.MixerTypeCreate,
    principal: Principal = Depends(can_create),
    db: AsyncSession = Depends(get_db),
):
    mixer_type = await LookupService(db).create_mixer_type(data)
    await AuditService(db).log_create(
        "MixerType", mixer_type.id, new_values={"code": mixer_type.code}, **_client(request, principal)
    )
    return schemas.MixerTypeResponse.model_validate(mixer_type)


@router.patch("/mixer-types/{mixer_type_id}", response_model=schemas.MixerTypeResponse)
async def update_mixer_type(
    request: Request,
    mixer_type_id: str,
    data: schemas.MixerTypeUpdate,
    principal: Principal = Depends(can_update),
    db: AsyncSession = Depends(get_db),
):
    mixer_type = await LookupService(db).update_mixer_type(mixer_type_id, data)
    await AuditService(db).log_update(
        "MixerType", mixer_type.id, new_values=data.model_dump(exclude_unset=True, mode="json"),
        **_client(request, principal),
    )
    return schemas.MixerTypeResponse.model_validate(mixer_type)


@router.delete("/mixer-types/{mixer_type_id}", response_model=MessageResponse)
async def delete_mixer_type(
    request: Request,
    mixer_type_id: str,
    principal: Principal = Depends(can_delete),
    db: AsyncSession = Depends(get_db),
):
    mixer_type = await LookupService(db).delete_mixer_type(mixer_type_id)
    await AuditService(db).log_delete(
        "MixerType", mixer_type_id, old_values={"code": mixer_type.code}, **_client(request, principal)
    )
    return bilingual("Mixer type deleted")


# ============================================================================
# LOOKUP TABLES
# ============================================================================

@router.get("/lookup-categories", response_model=List[schemas.LookupCategoryResponse])
async def list_lookup_categories(
    include_inactive: bool = False,
    principal: Principal = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    categories = await LookupService(db).list_lookup_categories(include_inactive=include_inactive)
    return [_category_response(category, include_inactive) for category in categories]


@router.get("/lookup-categories/code/{code}", response_model=schemas.LookupCategoryResponse)
async def get_lookup_category_by_code(
    code: str, principal: Principal = Depends(can_read), db: AsyncSession = Depends(get_db)
):
    """Category with its active items, for filling form dropdowns."""
    return _category_response(await LookupService(db).get_lookup_category_by_code(code), include_inactive=False)


@router.get("/lookup-categories/{category_id}", response_model=schemas.LookupCategoryResponse)
async def get_lookup_category(
    category_id: str, principal: Principal = Depends(can_read), db: AsyncSession = Depends(get_db)
):
    return _category_response(await LookupService(db).get_lookup_category(category_id))


@router.post("/lookup-categories", response_model=schemas.LookupCategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_lookup_category(
    request: Request,
    data: schemas.LookupCategoryCreate,
    principal: Principal = Depends(can_create),
    db: AsyncSession = Depends(get_db),
):
    category = await LookupService(db).create_lookup_category(data)
    await AuditService(db).log_create(
        "LookupCategory", category.id, new_values={"code": category.code, "items": len(data.items)},
        **_client(request, principal),
    )
    return _category_response(category)


@router.patch("/lookup-categories/{category_id}", response_model=schemas.LookupCategoryResponse)
async def update_lookup_category(
    request: Request,
    category_id: str,
    data: schemas.LookupCategoryUpdate,
    principal: Principal = Depends(can_update),
    db: AsyncSession = Depends(get_db),
):
    category = await LookupService(db).update_lookup_category(category_id, data)
    await AuditService(db).log_update(
        "LookupCategory", category.id, new_values=data.model_dump(exclude_unset=True, mode="json"),
        **_client(request, principal),
    )
    return _category_response(category)


@router.delete("/lookup-categories/{category_id}", response_model=MessageResponse)
async def delete_lookup_category(
    request: Request,
    category_id: str,
    principal: Principal = Depends(can_delete),
    db: AsyncSession = Depends(get_db),
):
    category = await LookupService(db).delete_lookup_category(category_id)
    await AuditService(db).log_delete(
        "LookupCategory", category_id, old_values={"code": category.code}, **_client(request, principal)
    )
    return bilingual("Lookup category deleted")


@router.post(
    "/lookup-categories/{category_id}/items",
    response_model=schemas.LookupItemResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_lookup_item(
    request: Request,
    category_id: str,
    data: schemas.LookupItemCreate,
    principal: Principal = Depends(can_create),
    db: AsyncSession = Depends(get_db),
):
    item = await LookupService(db).add_lookup_item(category_id, data)
    await AuditService(db).log_create(
        "LookupItem", item.id, new_values={"category_id": category_id, "code": item.code},
        **_client(request, principal),
    )
    return schemas.LookupItemResponse.model_validate(item)


@router.patch("/lookup-items/{item_id}", response_model=schemas.LookupItemResponse)
async def update_lookup_item(
    request: Request,
    item_id: str,
    data: schemas.LookupItemUpdate,
    principal: Principal = Depends(can_update),
    db: AsyncSession = Depends(get_db),
):
    item = await LookupService(db).update_lookup_item(item_id, data)
    await AuditService(db).log_update(
        "LookupItem", item.id, new_values=data.model_dump(exclude_unset=True, mode="json"),
        **_client(request, principal),
    )
    return schemas.LookupItemResponse.model_validate(item)


@router.delete("/lookup-items/{item_id}", response_model=MessageResponse)
async def delete_lookup_item(
    request: Request,
    item_id: str,
    principal: Principal = Depends(can_delete),
    db: AsyncSession = Depends(get_db),
):
    item = await LookupService(db).delete_lookup_item(item_id)
    await AuditService(db).log_delete(
        "LookupItem", item_id, old_values={"code": item.code}, **_client(request, principal)
    )
    return bilingual("Lookup item deleted")


# ============================================================================
# SYSTEM SETTINGS
# ============================================================================

@router.get("/system/public", response_model=List[schemas.PublicSettingResponse])
async def list_public_settings(db: AsyncSession = Depends(get_db)):
    """Settings flagged public, readable without a token."""
    settings = await SystemSettingService(db).list_public()
    return [schemas.PublicSettingResponse.model_validate(setting) for setting in settings]


@router.get("/system", response_model=List[schemas.SystemSettingResponse])
async def list_system_settings(
    category: Optional[str] = None,
    principal: Principal = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    settings = await SystemSettingService(db).list_settings(category=category)
    return [schemas.SystemSettingResponse.model_validate(setting) for setting in settings]


@router.get("/system/{key}", response_model=schemas.SystemSettingResponse)
async def get_system_setting(key: str, principal: Principal = Depends(can_read), db: AsyncSession = Depends(get_db)):
    return schemas.SystemSettingResponse.model_validate(await SystemSettingService(db).get_or_404(key))


@router.post("/system", response_model=schemas.SystemSettingResponse, status_code=status.HTTP_201_CREATED)
async def create_system_setting(
    request: Request,
    data: schemas.SystemSettingCreate,
    principal: Principal = Depends(can_create),
    db: AsyncSession = Depends(get_db),
):
    setting = await SystemSettingService(db).create(data)
    await AuditService(db).log_create(
        "SystemSetting", setting.id, new_values={"key": setting.key, "value": setting.value},
        **_client(request, principal),
    )
    return schemas.SystemSettingResponse.model_validate(setting)


@router.patch("/system", response_model=List[schemas.BulkSettingResult])
async def bulk_update_system_settings(
    request: Request,
    data: schemas.BulkSettingsUpdate,
    principal: Principal = Depends(can_update),
    db: AsyncSession = Depends(get_db),
):
    """Update several values at once; each key reports its own outcome."""
    results = await SystemSettingService(db).bulk_update(data.settings)
    audit = AuditService(db)
    response = []
    for result in results:
        setting = result.pop("setting", None)
        if setting is not None:
            await audit.log_update(
                "SystemSetting", setting.id, new_values={"key": setting.key, "value": setting.value},
                **_client(request, principal),
            )
            result["setting"] = schemas.SystemSettingResponse.model_validate(setting)
        response.append(schemas.BulkSettingResult(**result))
    return response


@router.patch("/system/{key}", response_model=schemas.SystemSettingResponse)
async def update_system_setting(
    request: Request,
    key: str,
    data: schemas.SystemSettingUpdate,
    principal: Principal = Depends(can_update),
    db: AsyncSession = Depends(get_db),
):
    setting = await SystemSettingService(db).update(key, data)
    await AuditService(db).log_update(
        "SystemSetting", setting.id, new_values=data.model_dump(exclude_unset=True, mode="json"),
        **_client(request, principal),
    )
    return schemas.SystemSettingResponse.model_validate(setting)


@router.delete("/system/{key}", response_model=MessageResponse)
async def delete_system_setting(
    request: Request,
    key: str,
    principal: Principal = Depends(can_delete),
    db: AsyncSession = Depends(get_db),
):
    setting = await SystemSettingService(db).delete(key)
    await AuditService(db).log_delete(
        "SystemSetting", setting.id, old_values={"key": key, "value": setting.value}, **_client(request, principal)
    )
    return bilingual("Setting deleted")
