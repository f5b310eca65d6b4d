"""Lookup tables served through the cached data sources.

Only the columns the core reads are mapped here; plugins extend these
records through their own tables.
"""

from __future__ import annotations
from datetime import date
from sqlalchemy import Integer, String, Boolean, Float, Date
from sqlalchemy.orm import Mapped, mapped_column
from erpia_core.db.session import Base


class Series(Base):
    __tablename__ = 'series'
    code: Mapped[str] = mapped_column(String(4), primary_key=True)
    description: Mapped[str] = mapped_column(String(100), nullable=False, default='')
    type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    for_sales: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    for_purchases: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    auto_entry: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    first_number: Mapped[int | None] = mapped_column(Integer, nullable=True)


class Tax(Base):
    __tablename__ = 'taxes'
    code: Mapped[str] = mapped_column(String(10), primary_key=True)
    description: Mapped[str] = mapped_column(String(100), nullable=False, default='')
    type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    surcharge: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    for_sales: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    for_purchases: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class PaymentMethod(Base):
    __tablename__ = 'payment_methods'
    code: Mapped[str] = mapped_column(String(10), primary_key=True)
    description: Mapped[str] = mapped_column(String(100), nullable=False, default='')
    company_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    expiration_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class Currency(Base):
    __tablename__ = 'currencies'
    code: Mapped[str] = mapped_column(String(3), primary_key=True)
    description: Mapped[str] = mapped_column(String(100), nullable=False, default='')
    symbol: Mapped[str] = mapped_column(String(10), nullable=False, default='')
    rate: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)


class Country(Base):
    __tablename__ = 'countries'
    code: Mapped[str] = mapped_column(String(3), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, default='')
    iso_code: Mapped[str | None] = mapped_column(String(2), nullable=True)


class Warehouse(Base):
    __tablename__ = 'warehouses'
    code: Mapped[str] = mapped_column(String(4), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, default='')
    company_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Company(Base):
    __tablename__ = 'companies'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, default='')
    short_name: Mapped[str | None] = mapped_column(String(32), nullable=True)
    tax_id: Mapped[str | None] = mapped_column(String(30), nullable=True)


class Agent(Base):
    __tablename__ = 'agents'
    code: Mapped[str] = mapped_column(String(10), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, default='')
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class CustomerGroup(Base):
    __tablename__ = 'customer_groups'
    code: Mapped[str] = mapped_column(String(6), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, default='')
    rate_code: Mapped[str | None] = mapped_column(String(6), nullable=True)


class Retention(Base):
    __tablename__ = 'retentions'
    code: Mapped[str] = mapped_column(String(10), primary_key=True)
    description: Mapped[str] = mapped_column(String(100), nullable=False, default='')
    percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class FiscalYear(Base):
    __tablename__ = 'fiscal_years'
    code: Mapped[str] = mapped_column(String(4), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, default='')
    company_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(10), nullable=False, default='OPEN')


class User(Base):
    __tablename__ = 'users'
    nick: Mapped[str] = mapped_column(String(50), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(100), nullable=True)
    admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
