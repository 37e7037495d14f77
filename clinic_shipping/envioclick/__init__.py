"""
Envioclick integration module.
Rate quotes and shipment labels through the Envioclick Pro aggregator.
"""

from clinic_shipping.envioclick.api import EnvioclickAPI
from clinic_shipping.envioclick.quoting import RateQuoter
from clinic_shipping.envioclick.shipments import ShipmentCreator, select_fresh_quote

__all__ = ["EnvioclickAPI", "RateQuoter", "ShipmentCreator", "select_fresh_quote"]
