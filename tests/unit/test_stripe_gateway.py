import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import stripe

from parkpay.payments.errors import WebhookSignatureError
from parkpay.payments.stripe_client import StripeGateway, normalize_intent

def _gateway(client=None, **kwargs):
    return StripeGateway("sk_test_123", webhook_secret="whsec_test", currency="mxn", client=client or MagicMock(), **kwargs)

def test_gateway_requires_api_key():
    with pytest.raises(RuntimeError):
        StripeGateway("")

def test_gateway_builds_its_own_client_without_touching_module_settings():
    before_client = getattr(stripe, "default_http_client", None)
    before_retries = getattr(stripe, "max_network_retries", None)
    gw = StripeGateway("sk_test_123", timeout=3, max_network_retries=1)
    assert isinstance(gw.client, stripe.StripeClient)
    assert getattr(stripe, "default_http_client", None) is before_client
    assert getattr(stripe, "max_network_retries", None) == before_retries

def test_two_gateways_do_not_share_clients():
    a = StripeGateway("sk_test_a")
    b = StripeGateway("sk_test_b")
    assert a.client is not b.client

def test_normalize_intent_keeps_only_flow_fields():
    raw = {
        "id": "pi_1",
        "status": "succeeded",
        "amount": 37500,
        "amount_received": 37500,
        "currency": "mxn",
        "customer": {"id": "cus_9", "email": "ana@example.com"},
        "client_secret": "pi_1_secret",
        "payment_method": "pm_card_visa",
        "metadata": {"entity_id": 1},
    }
    out = normalize_intent(raw)
    assert out["customer"] == "cus_9"
    assert out["metadata"] == {"entity_id": "1"}
    assert "payment_method" not in out

def test_find_or_create_customer_reuses_existing():
    client = MagicMock()
    client.v1.customers.list.return_value = SimpleNamespace(data=[SimpleNamespace(id="cus_old")])
    assert _gateway(client).find_or_create_customer(email="ana@example.com", name="Ana") == "cus_old"
    client.v1.customers.list.assert_called_once_with(params={"email": "ana@example.com", "limit": 1})
    client.v1.customers.create.assert_not_called()

def test_find_or_create_customer_creates_when_absent():
    client = MagicMock()
    client.v1.customers.list.return_value = SimpleNamespace(data=[])
    client.v1.customers.create.return_value = SimpleNamespace(id="cus_new")
    cid = _gateway(client).find_or_create_customer(email="ana@example.com", name="Ana", phone="5512345678")
    assert cid == "cus_new"
    params = client.v1.customers.create.call_args.kwargs["params"]
    assert params == {"email": "ana@example.com", "name": "Ana", "phone": "5512345678"}

def test_create_payment_intent_sends_cents_and_currency():
    client = MagicMock()
    client.v1.payment_intents.create.side_effect = lambda params: {
        "id": "pi_1",
        "status": "requires_payment_method",
        "amount": params["amount"],
        "client_secret": "s",
        "metadata": params["metadata"],
    }
    out = _gateway(client).create_payment_intent(
        amount_cents=37500,
        customer_id="cus_1",
        metadata={"entity_id": "1"},
        description="Inscription à l'événement: Concierto",
        receipt_email="ana@example.com",
    )
    sent = client.v1.payment_intents.create.call_args.kwargs["params"]
    assert sent["amount"] == 37500
    assert sent["currency"] == "mxn"
    assert sent["automatic_payment_methods"] == {"enabled": True}
    assert sent["receipt_email"] == "ana@example.com"
    assert out["id"] == "pi_1"
    assert out["metadata"] == {"entity_id": "1"}

def test_retrieve_payment_intent_normalizes_result():
    client = MagicMock()
    client.v1.payment_intents.retrieve.return_value = {"id": "pi_1", "status": "succeeded", "customer": "cus_1", "metadata": {}}
    out = _gateway(client).retrieve_payment_intent("pi_1")
    client.v1.payment_intents.retrieve.assert_called_once_with("pi_1")
    assert out["status"] == "succeeded"
    assert out["customer"] == "cus_1"

def test_parse_event_returns_raw_body_when_signature_valid(monkeypatch):
    body = json.dumps({"id": "evt_1", "type": "payment_intent.succeeded", "data": {"object": {"id": "pi_1"}}})
    monkeypatch.setattr(stripe.Webhook, "construct_event", lambda payload, sig, secret: object())
    event = _gateway().parse_event(body.encode(), "t=1,v1=abc")
    assert event["id"] == "evt_1"
    assert event["data"]["object"]["id"] == "pi_1"

def test_parse_event_rejects_bad_signature(monkeypatch):
    def _raise(payload, sig, secret):
        raise stripe.SignatureVerificationError("bad", sig)

    monkeypatch.setattr(stripe.Webhook, "construct_event", _raise)
    with pytest.raises(WebhookSignatureError):
        _gateway().parse_event(b"{}", "t=1,v1=forged")

def test_parse_event_rejects_missing_header_or_secret():
    with pytest.raises(WebhookSignatureError):
        _gateway().parse_event(b"{}", None)
    with pytest.raises(WebhookSignatureError):
        StripeGateway("sk_test_123", client=MagicMock()).parse_event(b"{}", "t=1,v1=abc")
