import os

# Pas de Redis en tests: le lifespan désactive fastapi-limiter
os.environ["DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS"] = "1"
os.environ.pop("LOCAL_RATE_LIMIT_FALLBACK", None)

import json
from datetime import datetime, timezone
from typing import Any, Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient

from parkpay.app import app as fastapi_app
from parkpay.dependencies import (
    get_booking_store,
    get_costing_dispatcher,
    get_costing_store,
    get_stripe_gateway,
)
from parkpay.payments.errors import DuplicateConfirmationError, WebhookSignatureError
from parkpay.payments.kinds import EVENT, SPACE, BookingKind

FROZEN_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
VALID_SIGNATURE = "t=1,v1=valid-signature"

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

# --- Fakes en mémoire (mêmes signatures que les implémentations Supabase/Stripe) ---

class FakeBookingStore:
    def __init__(self):
        self.entities: Dict[str, Dict[int, Dict[str, Any]]] = {EVENT.name: {}, SPACE.name: {}}
        self.bookings: Dict[str, List[Dict[str, Any]]] = {EVENT.name: [], SPACE.name: []}
        self.enforce_unique = True
        self._next_id = 1

    def add_entity(self, kind: BookingKind, row: Dict[str, Any]) -> Dict[str, Any]:
        self.entities[kind.name][int(row["id"])] = dict(row)
        return row

    def add_booking(self, kind: BookingKind, row: Dict[str, Any]) -> Dict[str, Any]:
        new = dict(row)
        new.setdefault("id", self._next_id)
        self._next_id += 1
        self.bookings[kind.name].append(new)
        return new

    def get_entity(self, kind, entity_id):
        row = self.entities[kind.name].get(int(entity_id))
        return dict(row) if row else None

    def count_active_bookings(self, kind, entity_id):
        return sum(
            1 for b in self.bookings[kind.name]
            if b.get(kind.foreign_key) == entity_id and b.get("status") != "cancelled"
        )

    def find_booking_by_email(self, kind, entity_id, email):
        for b in self.bookings[kind.name]:
            if b.get(kind.foreign_key) == entity_id and b.get("email") == email and b.get("status") != "cancelled":
                return dict(b)
        return None

    def find_booking(self, kind, entity_id, payment_intent_id, email=None):
        for b in self.bookings[kind.name]:
            if b.get(kind.foreign_key) != entity_id or b.get("stripe_payment_intent_id") != payment_intent_id:
                continue
            if email and b.get("email") != email:
                continue
            return dict(b)
        return None

    def insert_booking(self, kind, row):
        # Contrainte unique (fk, stripe_payment_intent_id), indépendante du pré-contrôle find_booking
        pi_id = row.get("stripe_payment_intent_id")
        taken = any(
            b.get(kind.foreign_key) == row.get(kind.foreign_key) and b.get("stripe_payment_intent_id") == pi_id
            for b in self.bookings[kind.name]
        )
        if self.enforce_unique and pi_id and taken:
            raise DuplicateConfirmationError("Une inscription existe déjà pour ce paiement")
        return dict(self.add_booking(kind, row))

    def update_booking(self, kind, booking_id, data):
        for b in self.bookings[kind.name]:
            if b.get("id") == booking_id:
                b.update(data)
                return dict(b)
        return None

class FakeStripeGateway:
    def __init__(self):
        self.customers: Dict[str, str] = {}
        self.intents: Dict[str, Dict[str, Any]] = {}
        self.calls: List[tuple] = []

    def find_or_create_customer(self, *, email, name, phone=None):
        self.calls.append(("customer", email))
        if email not in self.customers:
            self.customers[email] = f"cus_{len(self.customers) + 1}"
        return self.customers[email]

    def create_payment_intent(self, *, amount_cents, customer_id, metadata, description, receipt_email=None):
        pi_id = f"pi_test_{len(self.intents) + 1}"
        intent = {
            "id": pi_id,
            "status": "requires_payment_method",
            "amount": amount_cents,
            "amount_received": 0,
            "currency": "mxn",
            "customer": customer_id,
            "client_secret": f"{pi_id}_secret_abc",
            "metadata": dict(metadata),
            "description": description,
            "receipt_email": receipt_email,
        }
        self.intents[pi_id] = intent
        self.calls.append(("create_intent", pi_id))
        return dict(intent)

    def succeed(self, pi_id: str) -> Dict[str, Any]:
        intent = self.intents[pi_id]
        intent["status"] = "succeeded"
        intent["amount_received"] = intent["amount"]
        return dict(intent)

    def retrieve_payment_intent(self, payment_intent_id):
        self.calls.append(("retrieve", payment_intent_id))
        if payment_intent_id not in self.intents:
            raise LookupError(f"No such payment_intent: {payment_intent_id}")
        return dict(self.intents[payment_intent_id])

    def parse_event(self, payload, sig_header):
        if sig_header != VALID_SIGNATURE:
            raise WebhookSignatureError("Signature Stripe invalide")
        return json.loads(payload)

class FakeCostingStore:
    def __init__(self):
        self.entities: Dict[str, Dict[int, Dict[str, Any]]] = {EVENT.name: {}, SPACE.name: {}}
        self.entries: List[Dict[str, Any]] = []
        self.audit: List[Dict[str, Any]] = []

    def add_entity(self, kind: BookingKind, row: Dict[str, Any]) -> None:
        self.entities[kind.name][int(row["id"])] = dict(row)

    def get_entity(self, kind, entity_id):
        row = self.entities[kind.name].get(int(entity_id))
        if not row:
            return None
        return dict(row, title=row.get(kind.title_column))

    def find_audit(self, payment_intent_id):
        for row in self.audit:
            if row["payment_intent_id"] == payment_intent_id:
                return dict(row)
        return None

    def insert_accounting_entry(self, row):
        new = dict(row, id=len(self.entries) + 1)
        self.entries.append(new)
        return dict(new)

    def insert_audit(self, row):
        new = dict(row, id=len(self.audit) + 1)
        new.setdefault("processed_at", FROZEN_NOW.isoformat())
        self.audit.append(new)
        return dict(new)

    def list_audit(self, *, entity_type=None, entity_id=None, start=None, end=None):
        rows = [
            dict(r) for r in self.audit
            if (entity_type is None or r["entity_type"] == entity_type)
            and (entity_id is None or r["entity_id"] == entity_id)
            and (start is None or r["processed_at"] >= start)
            and (end is None or r["processed_at"] <= end)
        ]
        return sorted(rows, key=lambda r: r["processed_at"], reverse=True)

class RecordingDispatcher:
    def __init__(self):
        self.payloads: List[Dict[str, Any]] = []

    def dispatch(self, payload):
        self.payloads.append(payload)

def event_row(**overrides) -> Dict[str, Any]:
    row = {
        "id": 1,
        "title": "Concierto en el parque",
        "price": 500.0,
        "is_free": False,
        "capacity": 100,
        "discount_seniors": 10,
        "discount_students": 15,
        "discount_families": 0,
        "discount_disability": 0,
        "discount_early_bird": 0,
        "discount_early_bird_deadline": None,
        "cost_recovery_percentage": 30,
    }
    row.update(overrides)
    return row

def space_row(**overrides) -> Dict[str, Any]:
    row = {
        "id": 7,
        "name": "Salón de usos múltiples",
        "price": 200.0,
        "capacity": None,
        "discount_seniors": 20,
        "discount_students": 0,
        "discount_families": 10,
        "discount_disability": 0,
        "discount_early_bird": 0,
        "discount_early_bird_deadline": None,
        "cost_recovery_percentage": 50,
    }
    row.update(overrides)
    return row

# --- Fixtures ---

@pytest.fixture
def frozen_clock():
    return lambda: FROZEN_NOW

@pytest.fixture
def booking_store() -> FakeBookingStore:
    store = FakeBookingStore()
    store.add_entity(EVENT, event_row())
    store.add_entity(SPACE, space_row())
    return store

@pytest.fixture
def stripe_gateway() -> FakeStripeGateway:
    return FakeStripeGateway()

@pytest.fixture
def costing_store() -> FakeCostingStore:
    store = FakeCostingStore()
    store.add_entity(EVENT, event_row())
    store.add_entity(SPACE, space_row())
    return store

@pytest.fixture
def costing_dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app, booking_store, stripe_gateway, costing_store, costing_dispatcher) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_booking_store] = lambda: booking_store
    app.dependency_overrides[get_stripe_gateway] = lambda: stripe_gateway
    app.dependency_overrides[get_costing_store] = lambda: costing_store
    app.dependency_overrides[get_costing_dispatcher] = lambda: costing_dispatcher
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()

@pytest.fixture
def signed_event_body():
    """Construit (corps, en-têtes) d'un webhook Stripe accepté par FakeStripeGateway."""
    def _build(event_type: str, intent: Dict[str, Any], event_id: str = "evt_test_1"):
        body = json.dumps({"id": event_id, "type": event_type, "data": {"object": intent}})
        return body, {"stripe-signature": VALID_SIGNATURE, "content-type": "application/json"}
    return _build

def customer_payload(email: str = "ana@example.com", name: str = "Ana López") -> Dict[str, Any]:
    return {"fullName": name, "email": email, "phone": "5512345678"}

@pytest.fixture
def customer():
    return customer_payload
