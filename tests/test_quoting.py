"""Tests for rate quoting."""

import pytest

from clinic_shipping.envioclick import RateQuoter
from clinic_shipping.envioclick.quoting import NO_QUOTES_ERROR, QUOTE_FAILED_ERROR
from clinic_shipping.exceptions import EnvioclickAPIError
from clinic_shipping.models import LineItem
from tests.fakes import FakeEnvioclickAPI, rate, rates_response


class TestRateQuoter:
    """Tests for RateQuoter."""

    @pytest.mark.asyncio
    async def test_quotes_are_normalized(self, config, resolver, items):
        api = FakeEnvioclickAPI(quotations=[rates_response(
            rate("Coordinadora", 111, flete=14500, days=2),
            rate("Servientrega", 222, flete=16000, days=4, product="Mercancía Premier"),
        )])
        quoter = RateQuoter(api, config, resolver)

        result = await quoter.quote("Maicao", "La Guajira", items, 220445)

        assert result.success is True
        assert len(result.quotes) == 2

        first = result.quotes[0]
        assert first.carrier == "Coordinadora"
        assert first.service == "Estándar"
        assert first.shipping_cost == 14500
        assert first.delivery_days == 2
        assert first.id_rate == 111
        assert first.id_product == 1110
        assert result.quotes[1].service == "Mercancía Premier"

    @pytest.mark.asyncio
    async def test_payload(self, config, resolver, items):
        api = FakeEnvioclickAPI(quotations=[rates_response(rate("Coordinadora", 1))])
        quoter = RateQuoter(api, config, resolver)

        await quoter.quote("Maicao", "La Guajira", items, 220445)

        payload = api.payloads("quotation")[0]
        assert payload["destination"]["daneCode"] == "44430000"
        assert payload["origin"]["daneCode"] == "44001000"
        assert payload["contentValue"] == 220445
        assert payload["description"] == "Productos de Belleza"

        package = payload["packages"][0]
        # 0.15 x 2 + default 1 x 1
        assert package["weight"] == pytest.approx(1.3)
        assert (package["height"], package["width"], package["length"]) == (10, 10, 10)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("total", [0, -500])
    async def test_non_positive_total_uses_floor(self, config, resolver, items, total):
        api = FakeEnvioclickAPI(quotations=[rates_response(rate("Coordinadora", 1))])
        quoter = RateQuoter(api, config, resolver)

        await quoter.quote("Maicao", "La Guajira", items, total)

        assert api.payloads("quotation")[0]["contentValue"] == config.min_content_value == 20000

    @pytest.mark.asyncio
    async def test_dimensions_come_from_config(self, config, resolver):
        config.package_height = 25
        config.package_width = 15
        config.package_length = 30
        api = FakeEnvioclickAPI(quotations=[rates_response(rate("Coordinadora", 1))])
        quoter = RateQuoter(api, config, resolver)

        await quoter.quote("Cali", "Valle del Cauca", [LineItem(weight=2, quantity=1)], 50000)

        package = api.payloads("quotation")[0]["packages"][0]
        assert (package["height"], package["width"], package["length"]) == (25, 15, 30)

    @pytest.mark.asyncio
    async def test_uncovered_destination_makes_no_call(self, config, resolver, items):
        api = FakeEnvioclickAPI()
        quoter = RateQuoter(api, config, resolver)

        result = await quoter.quote("Nonexistent City", "Nonexistent Dept", items, 1000)

        assert result.success is False
        assert result.error == "Ciudad no cubierta (Nonexistent City)."
        assert api.calls == []

    @pytest.mark.asyncio
    async def test_api_error_is_structured(self, config, resolver, items):
        api = FakeEnvioclickAPI(quotations=[EnvioclickAPIError("boom", status=500)])
        quoter = RateQuoter(api, config, resolver)

        result = await quoter.quote("Maicao", "La Guajira", items, 1000)

        assert result.success is False
        assert result.error == QUOTE_FAILED_ERROR

    @pytest.mark.asyncio
    async def test_unexpected_error_is_structured(self, config, resolver, items):
        api = FakeEnvioclickAPI(quotations=[RuntimeError("unexpected")])
        quoter = RateQuoter(api, config, resolver)

        result = await quoter.quote("Maicao", "La Guajira", items, 1000)

        assert result.success is False
        assert result.error == QUOTE_FAILED_ERROR

    @pytest.mark.asyncio
    async def test_no_rates(self, config, resolver, items):
        api = FakeEnvioclickAPI(quotations=[rates_response()])
        quoter = RateQuoter(api, config, resolver)

        result = await quoter.quote("Maicao", "La Guajira", items, 1000)

        assert result.success is False
        assert result.error == NO_QUOTES_ERROR

    @pytest.mark.asyncio
    async def test_rate_without_id_is_skipped(self, config, resolver, items):
        broken = {"carrier": "Sin ID", "product": "x", "flete": 1}
        api = FakeEnvioclickAPI(quotations=[rates_response(broken, rate("Coordinadora", 7))])
        quoter = RateQuoter(api, config, resolver)

        result = await quoter.quote("Maicao", "La Guajira", items, 1000)

        assert [q.id_rate for q in result.quotes] == [7]

    @pytest.mark.asyncio
    async def test_checkout_shape(self, config, resolver, items):
        api = FakeEnvioclickAPI(quotations=[rates_response(rate("Coordinadora", 9, flete=9900, days=3))])
        quoter = RateQuoter(api, config, resolver)

        result = await quoter.quote("Maicao", "La Guajira", items, 1000)
        option = result.quotes[0].as_checkout_option()

        assert option["idRate"] == 9
        assert option["shippingCost"] == 9900
        assert option["deliveryCompany"] == {
            "companyName": "Coordinadora",
            "deliveryEstimate": "3 días hábiles",
            "shippingCost": 9900,
            "service": "Estándar",
        }
