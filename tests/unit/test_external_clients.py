"""Unit tests for the Stripe and Printful clients.

HTTP is never hit: the stripe library calls and Printful ``_request`` are patched.
"""

import hashlib
import hmac
import json
import time
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
import stripe
from services.store_service import printful_client, stripe_client
from services.store_service.printful_client import (
    PrintfulClient,
    PrintfulError,
    Recipient,
    map_category,
    normalize_size,
)
from services.store_service.stripe_client import (
    PaymentIntent,
    StripeClient,
    StripeError,
    construct_event,
)

SECRET = "whsec_unit"


def _stripe_header(body: bytes, secret: str = SECRET, timestamp: int = None) -> str:
    timestamp = timestamp if timestamp is not None else int(time.time())
    signed = f"{timestamp}.".encode() + body
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


# ---------------------------------------------------------------------------
# Stripe webhooks
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestStripeWebhookEvents:
    def test_construct_event_decodes(self):
        body = json.dumps({"type": "charge.refunded", "data": {"object": {}}}).encode()
        event = construct_event(body, _stripe_header(body), SECRET)
        assert event["type"] == "charge.refunded"

    def test_tampered_body(self):
        header = _stripe_header(b'{"amount": 100}')
        with pytest.raises(StripeError) as exc:
            construct_event(b'{"amount": 1}', header, SECRET)
        assert exc.value.status_code == 400

    def test_wrong_secret(self):
        body = b"{}"
        with pytest.raises(StripeError):
            construct_event(body, _stripe_header(body, secret="whsec_other"), SECRET)

    def test_stale_timestamp_rejected(self):
        body = b"{}"
        old = int(time.time()) - 3600
        with pytest.raises(StripeError):
            construct_event(body, _stripe_header(body, timestamp=old), SECRET)

    @pytest.mark.parametrize("header", [None, "", "garbage", "t=abc,v1=00", "v1=00"])
    def test_malformed_headers(self, header):
        with pytest.raises(StripeError) as exc:
            construct_event(b"{}", header, SECRET)
        assert exc.value.message == "Invalid Stripe signature"

    def test_missing_secret(self):
        body = b"{}"
        with pytest.raises(StripeError):
            construct_event(body, _stripe_header(body), "")


@pytest.mark.unit
class TestStripeClient:
    def test_missing_key_is_not_configured(self):
        with patch.object(stripe_client.settings, "STRIPE_SECRET_KEY", ""):
            with pytest.raises(StripeError) as exc:
                StripeClient()
        assert exc.value.status_code == 503

    def test_payment_intent_from_api(self):
        intent = PaymentIntent.from_api(
            {"id": "pi_1", "status": "succeeded", "amount": 7349, "client_secret": "s"}
        )
        assert intent.succeeded
        assert intent.amount == 7349
        assert intent.currency == "usd"
        assert intent.metadata == {}

    @pytest.mark.asyncio
    async def test_create_payment_intent_sends_cents(self):
        client = StripeClient(secret_key="sk_test_unit")
        create = AsyncMock(
            return_value={"id": "pi_1", "status": "requires_payment_method", "amount": 7349}
        )
        with patch.object(stripe.PaymentIntent, "create_async", create):
            intent = await client.create_payment_intent(7349, metadata={"order": "48R-1"})

        sent = create.call_args.kwargs
        assert sent["api_key"] == "sk_test_unit"
        assert sent["amount"] == 7349
        assert sent["currency"] == "usd"
        assert sent["automatic_payment_methods"] == {"enabled": True}
        assert "receipt_email" not in sent
        assert intent.id == "pi_1"

    @pytest.mark.asyncio
    async def test_library_errors_are_wrapped(self):
        client = StripeClient(secret_key="sk_test_unit")
        failure = stripe.InvalidRequestError(
            "No such payment_intent: 'pi_missing'", "intent", http_status=404
        )
        with patch.object(
            stripe.PaymentIntent, "retrieve_async", AsyncMock(side_effect=failure)
        ):
            with pytest.raises(StripeError) as exc:
                await client.retrieve_payment_intent("pi_missing")

        assert exc.value.status_code == 404
        assert "No such payment_intent" in exc.value.message

    @pytest.mark.asyncio
    async def test_create_refund(self):
        client = StripeClient(secret_key="sk_test_unit")
        create = AsyncMock(
            return_value={"id": "re_1", "status": "succeeded", "amount": 500, "payment_intent": "pi_1"}
        )
        with patch.object(stripe.Refund, "create_async", create):
            refund = await client.create_refund("pi_1", 500)

        assert create.call_args.kwargs == {
            "api_key": "sk_test_unit",
            "payment_intent": "pi_1",
            "amount": 500,
        }
        assert refund.amount == 500
        assert refund.payment_intent == "pi_1"

    @pytest.mark.asyncio
    async def test_full_refund_omits_amount(self):
        client = StripeClient(secret_key="sk_test_unit")
        create = AsyncMock(return_value={"id": "re_2", "status": "pending", "amount": 7349})
        with patch.object(stripe.Refund, "create_async", create):
            await client.create_refund("pi_1")

        assert "amount" not in create.call_args.kwargs


# ---------------------------------------------------------------------------
# Printful
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestPrintfulHelpers:
    def test_webhook_signature(self):
        body = b'{"type": "package_shipped"}'
        signature = hmac.new(SECRET.encode(), body, hashlib.sha256).hexdigest()
        assert printful_client.verify_webhook_signature(body, signature, SECRET)
        assert not printful_client.verify_webhook_signature(body, "00" * 32, SECRET)
        assert not printful_client.verify_webhook_signature(body, None, SECRET)

    @pytest.mark.parametrize(
        "product_type,category",
        [("T-Shirt", "tshirts"), ("Hoodie", "hoodies"), ("Mug", "accessories"), ("Blanket", "other"), (None, "other")],
    )
    def test_map_category(self, product_type, category):
        assert map_category(product_type) == category

    @pytest.mark.parametrize(
        "size,expected",
        [("Small", "S"), ("extra large", "XL"), ("2X-Large", "2XL"), ("M", "M"), (None, "One Size")],
    )
    def test_normalize_size(self, size, expected):
        assert normalize_size(size) == expected

    def test_recipient_payload_defaults(self):
        payload = Recipient(
            name="Lina Haddad",
            address1="1 Olive St",
            city="Austin",
            state_code="TX",
            country_code="",
            zip="78701",
        ).to_payload()
        assert payload["country_code"] == "US"
        assert payload["address2"] == ""
        assert payload["phone"] == ""

    def test_missing_token_is_not_configured(self):
        with patch.object(printful_client.settings, "PRINTFUL_API_TOKEN", ""):
            with pytest.raises(PrintfulError):
                PrintfulClient()


@pytest.mark.unit
class TestPrintfulClient:
    @pytest.mark.asyncio
    async def test_sync_products_follow_paging(self):
        client = PrintfulClient(api_token="pf_unit", store_id="")
        first = {"result": [{"id": n} for n in range(100)], "paging": {"total": 150}}
        second = {"result": [{"id": n} for n in range(100, 150)], "paging": {"total": 150}}
        api = AsyncMock(side_effect=[first, second])
        with patch.object(PrintfulClient, "_request", api):
            products = await client.get_sync_products()

        assert len(products) == 150
        assert api.call_args_list[1].kwargs["params"]["offset"] == 100

    @pytest.mark.asyncio
    async def test_standard_rate_preferred(self):
        client = PrintfulClient(api_token="pf_unit", store_id="")
        api = AsyncMock(
            return_value={
                "result": [
                    {"id": "EXPRESS", "name": "Express", "rate": "19.00"},
                    {"id": "STANDARD", "name": "Flat Rate", "rate": "4.75"},
                ]
            }
        )
        with patch.object(PrintfulClient, "_request", api):
            rate = await client.get_standard_shipping_rate({"country_code": "US"}, [])

        assert rate == Decimal("4.75")

    @pytest.mark.asyncio
    async def test_no_rates(self):
        client = PrintfulClient(api_token="pf_unit", store_id="")
        with patch.object(PrintfulClient, "_request", AsyncMock(return_value={"result": []})):
            assert await client.get_standard_shipping_rate({"country_code": "US"}, []) is None

    @pytest.mark.asyncio
    async def test_create_order_confirms_standard_shipping(self):
        client = PrintfulClient(api_token="pf_unit", store_id="")
        api = AsyncMock(return_value={"result": {"id": 555, "status": "pending"}})
        recipient = Recipient("Lina", "1 Olive St", "Austin", "TX", "US", "78701")
        with patch.object(PrintfulClient, "_request", api):
            result = await client.create_order("48R-1", recipient, [{"sync_variant_id": 1, "quantity": 1}])

        body = api.call_args.kwargs["json_data"]
        assert body["shipping"] == "STANDARD"
        assert body["external_id"] == "48R-1"
        assert api.call_args.kwargs["params"] == {"confirm": "true"}
        assert (result.id, result.status) == (555, "pending")
