"""
Geography module.
Resolves Colombian city/department names to DANE codes.
"""

from clinic_shipping.geo.dane_codes import (
    DaneResolver,
    find_dane_code,
    get_resolver,
    init_resolver,
    normalize_name,
)

__all__ = ["DaneResolver", "find_dane_code", "get_resolver", "init_resolver", "normalize_name"]
