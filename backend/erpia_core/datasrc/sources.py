from __future__ import annotations
from datetime import date
from typing import Any, Dict, List, Optional, Type

from erpia_core.datasrc.base import DataSource
from erpia_core.datasrc.code_model import array_to_code_model
from erpia_core.models.business import (
    Agent,
    Company,
    Country,
    Currency,
    CustomerGroup,
    FiscalYear,
    PaymentMethod,
    Retention,
    Series as SeriesModel,
    Tax,
    User,
    Warehouse,
)


class Series(DataSource):
    model = SeriesModel
    cache_key = 'model-series-list'
    default_setting = ('default', 'codserie', 'A')

    @classmethod
    def active(cls) -> List[SeriesModel]:
        return cls.where(lambda s: s.active is True)

    @classmethod
    def by_type(cls, series_type: str) -> List[SeriesModel]:
        return cls.where(lambda s: s.type == series_type)

    @classmethod
    def for_sales(cls) -> List[SeriesModel]:
        return cls.where(lambda s: s.for_sales is True)

    @classmethod
    def for_purchases(cls) -> List[SeriesModel]:
        return cls.where(lambda s: s.for_purchases is True)

    @classmethod
    def first_number(cls, code: str) -> int:
        return cls.get(code).first_number or 1

    @classmethod
    def with_auto_entry(cls) -> List[SeriesModel]:
        return cls.where(lambda s: s.auto_entry is True)


class Taxes(DataSource):
    model = Tax
    cache_key = 'model-taxes-list'
    default_setting = ('default', 'codimpuesto', 'IVA21')

    @classmethod
    def active(cls) -> List[Tax]:
        return cls.where(lambda t: t.active is True)

    @classmethod
    def by_type(cls, tax_type: str) -> List[Tax]:
        return cls.where(lambda t: t.type == tax_type)

    @classmethod
    def rate_by_code(cls, code: str) -> float:
        return cls.get(code).rate or 0.0

    @classmethod
    def with_rate_gte(cls, minimum: float) -> List[Tax]:
        return cls.where(lambda t: (t.rate or 0.0) >= minimum)

    @classmethod
    def for_sales(cls) -> List[Tax]:
        return cls.where(lambda t: t.for_sales is True)

    @classmethod
    def for_purchases(cls) -> List[Tax]:
        return cls.where(lambda t: t.for_purchases is True)


class PaymentMethods(DataSource):
    model = PaymentMethod
    cache_key = 'model-payment-methods-list'
    default_setting = ('default', 'codpago', '')

    @classmethod
    def active(cls) -> List[PaymentMethod]:
        return cls.where(lambda p: p.active is True)

    @classmethod
    def paid(cls) -> List[PaymentMethod]:
        return cls.where(lambda p: p.paid is True)

    @classmethod
    def by_company(cls, company_id: int) -> List[PaymentMethod]:
        return cls.where(lambda p: p.company_id == company_id)

    @classmethod
    def expiration_days(cls, code: str) -> int:
        return cls.get(code).expiration_days or 0


class Currencies(DataSource):
    model = Currency
    cache_key = 'model-currencies-list'
    default_setting = ('default', 'coddivisa', 'EUR')

    @classmethod
    def symbol(cls, code: str) -> str:
        return cls.get(code).symbol or ''

    @classmethod
    def exchange_rate(cls, code: str) -> float:
        return cls.get(code).rate or 1.0


class Countries(DataSource):
    model = Country
    cache_key = 'model-countries-list'
    label_field = 'name'
    default_setting = ('default', 'codpais', 'ESP')

    @classmethod
    def name_by_code(cls, code: str) -> str:
        return cls.get(code).name or ''

    @classmethod
    def iso_by_code(cls, code: str) -> str:
        return cls.get(code).iso_code or ''

    @classmethod
    def by_iso(cls, iso_code: str) -> Optional[Country]:
        for item in cls.all():
            if (item.iso_code or '').upper() == iso_code.upper():
                return item
        return None


class Warehouses(DataSource):
    model = Warehouse
    cache_key = 'model-warehouses-list'
    label_field = 'name'
    default_setting = ('default', 'codalmacen', '')

    @classmethod
    def active(cls) -> List[Warehouse]:
        return cls.where(lambda w: w.active is True)

    @classmethod
    def by_company(cls, company_id: int) -> List[Warehouse]:
        return cls.where(lambda w: w.company_id == company_id)


class Companies(DataSource):
    model = Company
    cache_key = 'model-companies-list'
    code_field = 'id'
    label_field = 'short_name'
    default_setting = ('default', 'idempresa', 1)

    @classmethod
    def _normalize(cls, code: Any) -> Any:
        if isinstance(code, str) and code.strip().lstrip('-').isdigit():
            return int(code)
        return code

    @classmethod
    def code_model(cls, add_empty: bool = True):
        # short names are optional, fall back to the full name
        values = {c.id: c.short_name or c.name for c in cls.all()}
        return array_to_code_model(values, add_empty)

    @classmethod
    def name_by_id(cls, company_id: Any) -> str:
        return cls.get(company_id).name or ''


class Agents(DataSource):
    model = Agent
    cache_key = 'model-agents-list'
    label_field = 'name'

    @classmethod
    def active(cls) -> List[Agent]:
        return cls.where(lambda a: a.active is True)


class CustomerGroups(DataSource):
    model = CustomerGroup
    cache_key = 'model-customer-groups-list'
    label_field = 'name'

    @classmethod
    def by_rate(cls, rate_code: str) -> List[CustomerGroup]:
        return cls.where(lambda g: g.rate_code == rate_code)


class Retentions(DataSource):
    model = Retention
    cache_key = 'model-retentions-list'
    default_setting = ('default', 'codretencion', '')

    @classmethod
    def active(cls) -> List[Retention]:
        return cls.where(lambda r: r.active is True)

    @classmethod
    def rate_by_code(cls, code: str) -> float:
        return cls.get(code).percentage or 0.0

    @classmethod
    def with_rate_gte(cls, minimum: float) -> List[Retention]:
        return cls.where(lambda r: (r.percentage or 0.0) >= minimum)


class FiscalYears(DataSource):
    model = FiscalYear
    cache_key = 'model-fiscal-years-list'
    label_field = 'name'

    @classmethod
    def active(cls) -> List[FiscalYear]:
        return cls.where(lambda y: y.status == 'OPEN')

    @classmethod
    def by_year(cls, year: int) -> List[FiscalYear]:
        return cls.where(lambda y: y.start_date is not None and y.start_date.year == year)

    @classmethod
    def current(cls, company_id: Optional[int] = None, today: Optional[date] = None) -> Optional[FiscalYear]:
        today = today or date.today()
        for item in cls.active():
            if company_id is not None and item.company_id != company_id:
                continue
            if item.start_date and item.end_date and item.start_date <= today <= item.end_date:
                return item
        return None


class Users(DataSource):
    model = User
    cache_key = 'model-users-list'
    code_field = 'nick'
    label_field = 'nick'

    @classmethod
    def active(cls) -> List[User]:
        return cls.where(lambda u: u.enabled is True)

    @classmethod
    def admins(cls) -> List[User]:
        return cls.where(lambda u: u.admin is True)

    @classmethod
    def by_level(cls, level: int) -> List[User]:
        return cls.where(lambda u: (u.level or 0) >= level)


SOURCES: Dict[str, Type[DataSource]] = {
    cls.__name__: cls
    for cls in (
        Series, Taxes, PaymentMethods, Currencies, Countries, Warehouses,
        Companies, Agents, CustomerGroups, Retentions, FiscalYears, Users,
    )
}


def clear_all() -> None:
    for source in SOURCES.values():
        source.clear()
