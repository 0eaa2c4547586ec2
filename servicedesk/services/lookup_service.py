"""
Lookup Service

Reference data behind pricing and request forms: test types and their
sample types, standards, price lists, distance rates, mixer types and the
generic lookup tables.

Listings hide inactive rows (and inactive children) unless asked not to.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, List

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.exceptions import BadRequestError, ConflictError, NotFoundError
from servicedesk.core.utils import as_utc
from servicedesk.models.enums import ServiceCategory, StandardType
from servicedesk.models.lookup import (
    DistanceRate,
    LookupCategory,
    LookupItem,
    MixerType,
    PriceList,
    PriceListItem,
    SampleType,
    Standard,
    TestType,
)
from servicedesk.schemas import settings as schemas
from servicedesk.services.invoice_service import money

logger = logging.getLogger(__name__)


def active_children(children, include_inactive: bool):
    """Child rows a listing should show."""
    if include_inactive:
        return list(children)
    return [child for child in children if child.is_active]


class LookupService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_or_404(self, model, row_id: str, message: str):
        row = await self.db.get(model, row_id)
        if not row:
            raise NotFoundError(message)
        return row

    async def _ensure_code_free(self, model, code: str, message: str, exclude_id: Optional[str] = None, **scope):
        query = select(model.id).where(model.code == code)
        for column, value in scope.items():
            query = query.where(getattr(model, column) == value)
        if exclude_id:
            query = query.where(model.id != exclude_id)
        if (await self.db.execute(query)).first():
            raise ConflictError(message)

    async def _load_many(self, model, ids: List[str], message: str) -> list:
        ids = list(dict.fromkeys(ids))
        if not ids:
            return []
        result = await self.db.execute(select(model).where(model.id.in_(ids)))
        rows = list(result.scalars().all())
        if len(rows) != len(ids):
            raise NotFoundError(message)
        return rows

    # =========================================================================
    # TEST TYPES
    # =========================================================================

    async def list_test_types(
        self, category: Optional[ServiceCategory] = None, include_inactive: bool = False
    ) -> List[TestType]:
        query = select(TestType)
        if not include_inactive:
            query = query.where(TestType.is_active.is_(True))
        if category:
            query = query.where(TestType.category == category)
        result = await self.db.execute(query.order_by(TestType.sort_order, TestType.name))
        return list(result.scalars().all())

    async def get_test_type(self, test_type_id: str) -> TestType:
        return await self._get_or_404(TestType, test_type_id, "Test type not found")

    async def create_test_type(self, data: schemas.TestTypeCreate) -> TestType:
        await self._ensure_code_free(TestType, data.code, "Test type with this code already exists")
        standards = await self._load_many(Standard, data.standard_ids, "Standard not found")

        test_type = TestType(**data.model_dump(exclude={"standard_ids"}), samples=[], standards=standards)
        self.db.add(test_type)
        await self.db.flush()
        logger.info(f"Test type created: {test_type.code}")
        return test_type

    async def update_test_type(self, test_type_id: str, data: schemas.TestTypeUpdate) -> TestType:
        test_type = await self.get_test_type(test_type_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("code"):
            await self._ensure_code_free(
                TestType, changes["code"], "Test type with this code already exists", exclude_id=test_type.id
            )
        standard_ids = changes.pop("standard_ids", None)
        if standard_ids is not None:
            test_type.standards = await self._load_many(Standard, standard_ids, "Standard not found")

        for field, value in changes.items():
            setattr(test_type, field, value)
        await self.db.flush()
        return test_type

    async def delete_test_type(self, test_type_id: str) -> TestType:
        test_type = await self.get_test_type(test_type_id)
        if test_type.samples:
            raise BadRequestError("Cannot delete test type with sample types")
        await self.db.delete(test_type)
        await self.db.flush()
        return test_type

    # =========================================================================
    # SAMPLE TYPES
    # =========================================================================

    async def list_sample_types(
        self, test_type_id: Optional[str] = None, include_inactive: bool = False
    ) -> List[SampleType]:
        query = select(SampleType)
        if not include_inactive:
            query = query.where(SampleType.is_active.is_(True))
        if test_type_id:
            query = query.where(SampleType.test_type_id == test_type_id)
        result = await self.db.execute(query.order_by(SampleType.sort_order, SampleType.name))
        return list(result.unique().scalars().all())

    async def get_sample_type(self, sample_type_id: str) -> SampleType:
        return await self._get_or_404(SampleType, sample_type_id, "Sample type not found")

    async def create_sample_type(self, data: schemas.SampleTypeCreate) -> SampleType:
        await self._ensure_code_free(SampleType, data.code, "Sample type with this code already exists")
        test_type = await self.db.get(TestType, data.test_type_id)
        if not test_type:
            raise BadRequestError("Test type not found")

        sample_type = SampleType(**data.model_dump(exclude={"test_type_id"}))
        test_type.samples.append(sample_type)
        await self.db.flush()
        return sample_type

    async def update_sample_type(self, sample_type_id: str, data: schemas.SampleTypeUpdate) -> SampleType:
        sample_type = await self.get_sample_type(sample_type_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("code"):
            await self._ensure_code_free(
                SampleType, changes["code"], "Sample type with this code already exists",
                exclude_id=sample_type.id,
            )
        test_type_id = changes.pop("test_type_id", None)
        if test_type_id and test_type_id != sample_type.test_type_id:
            test_type = await self.db.get(TestType, test_type_id)
            if not test_type:
                raise BadRequestError("Test type not found")
            sample_type.test_type = test_type

        for field, value in changes.items():
            setattr(sample_type, field, value)

        if sample_type.max_quantity is not None and sample_type.max_quantity < sample_type.min_quantity:
            raise BadRequestError("max_quantity must not be below min_quantity")
        await self.db.flush()
        return sample_type

    async def delete_sample_type(self, sample_type_id: str) -> SampleType:
        sample_type = await self.get_sample_type(sample_type_id)
        sample_type.test_type.samples.remove(sample_type)
        await self.db.delete(sample_type)
        await self.db.flush()
        return sample_type

    # =========================================================================
    # STANDARDS
    # =========================================================================

    async def list_standards(
        self, type: Optional[StandardType] = None, include_inactive: bool = False
    ) -> List[Standard]:
        query = select(Standard)
        if not include_inactive:
            query = query.where(Standard.is_active.is_(True))
        if type:
            query = query.where(Standard.type == type)
        result = await self.db.execute(query.order_by(Standard.sort_order, Standard.name))
        return list(result.scalars().all())

    async def get_standard(self, standard_id: str) -> Standard:
        return await self._get_or_404(Standard, standard_id, "Standard not found")

    async def create_standard(self, data: schemas.StandardCreate) -> Standard:
        await self._ensure_code_free(Standard, data.code, "Standard with this code already exists")
        test_types = await self._load_many(TestType, data.test_type_ids, "Test type not found")

        standard = Standard(**data.model_dump(exclude={"test_type_ids"}), test_types=test_types)
        self.db.add(standard)
        await self.db.flush()
        return standard

    async def update_standard(self, standard_id: str, data: schemas.StandardUpdate) -> Standard:
        standard = await self.get_standard(standard_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("code"):
            await self._ensure_code_free(
                Standard, changes["code"], "Standard with this code already exists", exclude_id=standard.id
            )
        test_type_ids = changes.pop("test_type_ids", None)
        if test_type_ids is not None:
            # Full replace of the links
            standard.test_types = await self._load_many(TestType, test_type_ids, "Test type not found")

        for field, value in changes.items():
            setattr(standard, field, value)
        await self.db.flush()
        return standard

    async def delete_standard(self, standard_id: str) -> Standard:
        standard = await self.get_standard(standard_id)
        standard.test_types = []
        await self.db.delete(standard)
        await self.db.flush()
        return standard

    # =========================================================================
    # PRICE LISTS
    # =========================================================================

    async def list_price_lists(
        self, category: Optional[ServiceCategory] = None, include_inactive: bool = False
    ) -> List[PriceList]:
        query = select(PriceList)
        if not include_inactive:
            query = query.where(PriceList.is_active.is_(True))
        if category:
            query = query.where(PriceList.category == category)
        result = await self.db.execute(query.order_by(PriceList.valid_from.desc(), PriceList.name))
        return list(result.scalars().all())

    async def get_price_list(self, price_list_id: str) -> PriceList:
        return await self._get_or_404(PriceList, price_list_id, "Price list not found")

    async def _clear_default_price_list(self, category: ServiceCategory, keep_id: Optional[str] = None) -> None:
        statement = (
            update(PriceList)
            .where(PriceList.category == category, PriceList.is_default.is_(True))
            .values(is_default=False)
        )
        if keep_id:
            statement = statement.where(PriceList.id != keep_id)
        await self.db.execute(statement)

    async def create_price_list(self, data: schemas.PriceListCreate) -> PriceList:
        await self._ensure_code_free(PriceList, data.code, "Price list with this code already exists")

        if data.is_default:
            await self._clear_default_price_list(data.category)

        fields = data.model_dump(exclude={"items", "valid_from"})
        price_list = PriceList(
            **fields,
            valid_from=data.valid_from or datetime.now(timezone.utc),
            items=[PriceListItem(**item.model_dump()) for item in data.items],
        )
        self.db.add(price_list)
        await self.db.flush()
        logger.info(f"Price list created: {price_list.code} ({len(data.items)} items)")
        return price_list

    async def update_price_list(self, price_list_id: str, data: schemas.PriceListUpdate) -> PriceList:
        price_list = await self.get_price_list(price_list_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("code"):
            await self._ensure_code_free(
                PriceList, changes["code"], "Price list with this code already exists", exclude_id=price_list.id
            )
        if "valid_from" in changes and changes["valid_from"] is None:
            del changes["valid_from"]

        for field, value in changes.items():
            setattr(price_list, field, value)

        if price_list.valid_to and as_utc(price_list.valid_to) <= as_utc(price_list.valid_from):
            raise BadRequestError("valid_to must be after valid_from")
        if price_list.is_default:
            await self._clear_default_price_list(price_list.category, keep_id=price_list.id)

        await self.db.flush()
        return price_list

    async def delete_price_list(self, price_list_id: str) -> PriceList:
        price_list = await self.get_price_list(price_list_id)
        await self.db.delete(price_list)
        await self.db.flush()
        return price_list

    async def current_price_list(self, category: ServiceCategory) -> PriceList:
        """The active default list for a category whose validity window contains now."""
        now = datetime.now(timezone.utc)
        candidates = await self.db.execute(
            select(PriceList)
            .where(
                PriceList.category == category,
                PriceList.is_active.is_(True),
                PriceList.is_default.is_(True),
            )
            .order_by(PriceList.valid_from.desc())
        )
        for price_list in candidates.scalars().all():
            if as_utc(price_list.valid_from) <= now and (
                price_list.valid_to is None or as_utc(price_list.valid_to) > now
            ):
                return price_list
        raise NotFoundError("No current price list for this category")

    async def add_price_list_item(self, price_list_id: str, data: schemas.PriceListItemCreate) -> PriceListItem:
        price_list = await self.get_price_list(price_list_id)
        await self._ensure_code_free(
            PriceListItem, data.code, "Item with this code already exists in this price list",
            price_list_id=price_list.id,
        )

        item = PriceListItem(**data.model_dump())
        price_list.items.append(item)
        await self.db.flush()
        return item

    async def update_price_list_item(self, item_id: str, data: schemas.PriceListItemUpdate) -> PriceListItem:
        item = await self._get_or_404(PriceListItem, item_id, "Price list item not found")
        changes = data.model_dump(exclude_unset=True)

        if changes.get("code"):
            await self._ensure_code_free(
                PriceListItem, changes["code"], "Item with this code already exists in this price list",
                exclude_id=item.id, price_list_id=item.price_list_id,
            )
        for field, value in changes.items():
            setattr(item, field, value)
        await self.db.flush()
        return item

    async def delete_price_list_item(self, item_id: str) -> PriceListItem:
        item = await self._get_or_404(PriceListItem, item_id, "Price list item not found")
        price_list = await self.get_price_list(item.price_list_id)
        price_list.items.remove(item)  # delete-orphan
        await self.db.flush()
        return item

    # =========================================================================
    # DISTANCE RATES
    # =========================================================================

    async def list_distance_rates(self, include_inactive: bool = False) -> List[DistanceRate]:
        query = select(DistanceRate)
        if not include_inactive:
            query = query.where(DistanceRate.is_active.is_(True))
        result = await self.db.execute(query.order_by(DistanceRate.from_km))
        return list(result.scalars().all())

    async def get_distance_rate(self, rate_id: str) -> DistanceRate:
        return await self._get_or_404(DistanceRate, rate_id, "Distance rate not found")

    async def _ensure_no_overlap(self, from_km: int, to_km: int, exclude_id: Optional[str] = None) -> None:
        """Active bands are half-open [from_km, to_km) and must not overlap."""
        if from_km >= to_km:
            raise BadRequestError("from_km must be less than to_km")

        query = select(DistanceRate.id).where(
            DistanceRate.is_active.is_(True),
            DistanceRate.from_km < to_km,
            DistanceRate.to_km > from_km,
        )
        if exclude_id:
            query = query.where(DistanceRate.id != exclude_id)
        if (await self.db.execute(query)).first():
            raise ConflictError("Distance range overlaps with existing rate")

    async def create_distance_rate(self, data: schemas.DistanceRateCreate) -> DistanceRate:
        if data.is_active:
            await self._ensure_no_overlap(data.from_km, data.to_km)
        elif data.from_km >= data.to_km:
            raise BadRequestError("from_km must be less than to_km")

        rate = DistanceRate(**data.model_dump())
        self.db.add(rate)
        await self.db.flush()
        return rate

    async def update_distance_rate(self, rate_id: str, data: schemas.DistanceRateUpdate) -> DistanceRate:
        rate = await self.get_distance_rate(rate_id)
        changes = data.model_dump(exclude_unset=True)

        from_km = changes.get("from_km", rate.from_km)
        to_km = changes.get("to_km", rate.to_km)
        is_active = changes.get("is_active", rate.is_active)
        if is_active:
            await self._ensure_no_overlap(from_km, to_km, exclude_id=rate.id)
        elif from_km >= to_km:
            raise BadRequestError("from_km must be less than to_km")

        for field, value in changes.items():
            setattr(rate, field, value)
        await self.db.flush()
        return rate

    async def delete_distance_rate(self, rate_id: str) -> DistanceRate:
        rate = await self.get_distance_rate(rate_id)
        await self.db.delete(rate)
        await self.db.flush()
        return rate

    async def quote_distance(self, distance_km: Decimal) -> dict:
        """
        Site-visit fee for a distance.

        fee = band rate + rate_per_km * (distance - band start), the per-km
        part only when the band has one.

        Raises:
            BadRequestError: Negative distance
            NotFoundError: No active band covers the distance
        """
        distance_km = Decimal(distance_km)
        if distance_km < 0:
            raise BadRequestError("Distance cannot be negative")

        band = next(
            (
                rate for rate in await self.list_distance_rates()
                if rate.from_km <= distance_km < rate.to_km
            ),
            None,
        )
        if not band:
            raise NotFoundError("No distance rate covers this distance")

        fee = money(band.rate)
        if band.rate_per_km:
            fee = money(fee + money(band.rate_per_km) * (distance_km - band.from_km))
        return {
            "distance_km": distance_km,
            "rate_id": band.id,
            "from_km": band.from_km,
            "to_km": band.to_km,
            "fee": fee,
        }

    # =========================================================================
    # MIXER TYPES
    # =========================================================================

    async def list_mixer_types(self, include_inactive: bool = False) -> List[MixerType]:
        query = select(MixerType)
        if not include_inactive:
            query = query.where(MixerType.is_active.is_(True))
        result = await self.db.execute(query.order_by(MixerType.sort_order, MixerType.name))
        return list(result.scalars().all())

    async def get_mixer_type(self, mixer_type_id: str) -> MixerType:
        return await self._get_or_404(MixerType, mixer_type_id, "Mixer type not found")

    async def create_mixer_type(self, data: schemas.MixerTypeCreate) -> MixerType:
        await self._ensure_code_free(MixerType, data.code, "Mixer type with this code already exists")
        mixer_type = MixerType(**data.model_dump())
        self.db.add(mixer_type)
        await self.db.flush()
        return mixer_type

    async def update_mixer_type(self, mixer_type_id: str, data: schemas.MixerTypeUpdate) -> MixerType:
        mixer_type = await self.get_mixer_type(mixer_type_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("code"):
            await self._ensure_code_free(
                MixerType, changes["code"], "Mixer type with this code already exists", exclude_id=mixer_type.id
            )
        for field, value in changes.items():
            setattr(mixer_type, field, value)
        await self.db.flush()
        return mixer_type

    async def delete_mixer_type(self, mixer_type_id: str) -> MixerType:
        mixer_type = await self.get_mixer_type(mixer_type_id)
        await self.db.delete(mixer_type)
        await self.db.flush()
        return mixer_type

    # =========================================================================
    # LOOKUP TABLES
    # =========================================================================

    async def list_lookup_categories(self, include_inactive: bool = False) -> List[LookupCategory]:
        query = select(LookupCategory)
        if not include_inactive:
            query = query.where(LookupCategory.is_active.is_(True))
        result = await self.db.execute(query.order_by(LookupCategory.name))
        return list(result.scalars().all())

    async def get_lookup_category(self, category_id: str) -> LookupCategory:
        return await self._get_or_404(LookupCategory, category_id, "Lookup category not found")

    async def get_lookup_category_by_code(self, code: str) -> LookupCategory:
        result = await self.db.execute(select(LookupCategory).where(LookupCategory.code == code))
        category = result.scalar_one_or_none()
        if not category:
            raise NotFoundError("Lookup category not found")
        return category

    async def create_lookup_category(self, data: schemas.LookupCategoryCreate) -> LookupCategory:
        await self._ensure_code_free(LookupCategory, data.code, "Lookup category with this code already exists")
        category = LookupCategory(
            **data.model_dump(exclude={"items"}),
            items=[LookupItem(**item.model_dump()) for item in data.items],
        )
        self.db.add(category)
        await self.db.flush()
        return category

    async def update_lookup_category(self, category_id: str, data: schemas.LookupCategoryUpdate) -> LookupCategory:
        category = await self.get_lookup_category(category_id)
        changes = data.model_dump(exclude_unset=True)

        if category.is_system and changes.get("is_active") is False:
            raise BadRequestError("Cannot deactivate system category")
        if changes.get("code"):
            await self._ensure_code_free(
                LookupCategory, changes["code"], "Lookup category with this code already exists",
                exclude_id=category.id,
            )
        for field, value in changes.items():
            setattr(category, field, value)
        await self.db.flush()
        return category

    async def delete_lookup_category(self, category_id: str) -> LookupCategory:
        category = await self.get_lookup_category(category_id)
        if category.is_system:
            raise BadRequestError("Cannot delete system category")
        await self.db.delete(category)
        await self.db.flush()
        return category

    @staticmethod
    def _make_default(category: LookupCategory, item: LookupItem) -> None:
        for other in category.items:
            if other is not item:
                other.is_default = False

    async def add_lookup_item(self, category_id: str, data: schemas.LookupItemCreate) -> LookupItem:
        category = await self.get_lookup_category(category_id)
        await self._ensure_code_free(
            LookupItem, data.code, "Item with this code already exists in this category",
            category_id=category.id,
        )

        item = LookupItem(**data.model_dump())
        category.items.append(item)
        if item.is_default:
            self._make_default(category, item)
        await self.db.flush()
        return item

    async def update_lookup_item(self, item_id: str, data: schemas.LookupItemUpdate) -> LookupItem:
        item = await self._get_or_404(LookupItem, item_id, "Lookup item not found")
        changes = data.model_dump(exclude_unset=True)

        if changes.get("code"):
            await self._ensure_code_free(
                LookupItem, changes["code"], "Item with this code already exists in this category",
                exclude_id=item.id, category_id=item.category_id,
            )
        for field, value in changes.items():
            setattr(item, field, value)

        if changes.get("is_default"):
            self._make_default(await self.get_lookup_category(item.category_id), item)
        await self.db.flush()
        return item

    async def delete_lookup_item(self, item_id: str) -> LookupItem:
        item = await self._get_or_404(LookupItem, item_id, "Lookup item not found")
        category = await self.get_lookup_category(item.category_id)
        category.items.remove(item)  # delete-orphan
        await self.db.flush()
        return item

    async def count_rows(self) -> dict:
        """Row counts per reference table, for the settings overview."""
        counts = {}
        for label, model in (
            ("test_types", TestType),
            ("sample_types", SampleType),
            ("standards", Standard),
            ("price_lists", PriceList),
            ("distance_rates", DistanceRate),
            ("mixer_types", MixerType),
            ("lookup_categories", LookupCategory),
        ):
            counts[label] = (await self.db.execute(select(func.count(model.id)))).scalar() or 0
        return counts
