"""HTTP-level tests: routing, actor headers, envelopes and error bodies."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from conftest import ACME_ID, OTHER_SUPPLIER_ID, PROJECT_ID, headers_for
from scm_api.services.notifier import NotificationKind

CLAIM_BODY = {
    "supplierId": ACME_ID,
    "projectId": PROJECT_ID,
    "orderNumber": "PO-4711",
    "claimArea": "Material",
    "claimInfo": "Cracked welds on crane boom sections",
    "damageText": "Two boom sections had to be re-welded on site",
    "damageAmount": "1500.00",
    "demandType": "Compensation",
}

RATING_BODY = {
    "supplierId": ACME_ID,
    "projectId": PROJECT_ID,
    "jobDescription": "Crane boom fabrication and delivery",
    "hseRating": 5,
    "communicationRating": 4,
    "competencyRating": 5,
    "onTimeRating": 4,
    "serviceRating": 5,
}


async def _create_claim(client, actors, **overrides) -> dict:
    response = await client.post(
        "/api/v1/claims", json={**CLAIM_BODY, **overrides}, headers=headers_for(actors.purchasing)
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def _transition(client, actor, entity_id, action, comment=None, entity_type="claim"):
    body = {"entityType": entity_type, "entityId": entity_id, "action": action}
    if comment is not None:
        body["comment"] = comment
    return await client.post("/api/v1/transitions", json=body, headers=headers_for(actor))


@pytest.mark.asyncio
async def test_health(client) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["version"] == "1.0.0"
    assert body["mailDelivery"] in {"smtp", "log"}


@pytest.mark.asyncio
async def test_requests_without_actor_headers_are_unauthorized(client) -> None:
    response = await client.get("/api/v1/claims")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"

    response = await client.get("/api/v1/claims", headers={"X-User-Id": "1", "X-User-Role": "janitor"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_claim(client, actors) -> None:
    claim = await _create_claim(client, actors)
    year = datetime.now(timezone.utc).year
    assert claim["claimNumber"] == f"CLM-{year}-001"
    assert claim["status"] == "New"
    assert Decimal(claim["damageAmount"]) == Decimal("1500.00")
    assert claim["version"] == 1


@pytest.mark.asyncio
async def test_invalid_claim_body_is_a_validation_error(client, actors) -> None:
    response = await client.post(
        "/api/v1/claims",
        json={**CLAIM_BODY, "damageAmount": "-5", "claimArea": "Cargo"},
        headers=headers_for(actors.purchasing),
    )
    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    fields = {f["field"] for f in error["details"]["fields"]}
    assert {"damageAmount", "claimArea"} <= fields


@pytest.mark.asyncio
async def test_full_claim_workflow_over_http(client, actors, notifier) -> None:
    claim = await _create_claim(client, actors)

    for actor, action in (
        (actors.operations, "approve"),
        (actors.legal, "approve"),
        (actors.purchasing, "send_to_supplier"),
    ):
        response = await _transition(client, actor, claim["id"], action)
        assert response.status_code == 200, response.text

    assert [n.kind for n in notifier.sent] == [NotificationKind.CLAIM_SENT_TO_SUPPLIER]

    response = await _transition(client, actors.supplier, claim["id"], "decline", "Damage happened in transit")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "Rejected by supplier"
    assert data["acceptedBySupplier"] is False
    assert data["acceptedSupplierText"] == "Damage happened in transit"

    response = await client.get(
        "/api/v1/audit",
        params={"entityType": "claim", "entityId": claim["id"]},
        headers=headers_for(actors.legal),
    )
    assert response.status_code == 200
    assert response.json()["meta"]["total"] == 5


@pytest.mark.asyncio
async def test_invalid_transition_returns_409(client, actors) -> None:
    claim = await _create_claim(client, actors)
    response = await _transition(client, actors.purchasing, claim["id"], "send_to_supplier")
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "INVALID_TRANSITION"


@pytest.mark.asyncio
async def test_reject_without_comment_returns_422(client, actors) -> None:
    claim = await _create_claim(client, actors)
    response = await _transition(client, actors.operations, claim["id"], "reject")
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_unknown_entity_returns_404(client, actors) -> None:
    response = await _transition(client, actors.operations, 12345, "approve")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_workflow_view(client, actors) -> None:
    claim = await _create_claim(client, actors)
    response = await client.get(
        f"/api/v1/transitions/claim/{claim['id']}", headers=headers_for(actors.operations)
    )
    assert response.status_code == 200
    view = response.json()["data"]
    assert view["canApprove"] is True
    assert view["canSendToSupplier"] is False
    assert view["status"] == "New"


@pytest.mark.asyncio
async def test_edit_outside_window_is_forbidden(client, actors) -> None:
    claim = await _create_claim(client, actors)
    response = await client.put(
        f"/api/v1/claims/{claim['id']}",
        json={"damageAmount": "99.00"},
        headers=headers_for(actors.operations),
    )
    assert response.status_code == 403

    response = await client.put(
        f"/api/v1/claims/{claim['id']}",
        json={"damageAmount": "99.00"},
        headers=headers_for(actors.purchasing),
    )
    assert response.status_code == 200
    assert Decimal(response.json()["data"]["damageAmount"]) == Decimal("99.00")


@pytest.mark.asyncio
async def test_supplier_cannot_read_other_suppliers_claim(client, actors) -> None:
    claim = await _create_claim(client, actors, supplierId=OTHER_SUPPLIER_ID)
    response = await client.get(f"/api/v1/claims/{claim['id']}", headers=headers_for(actors.supplier))
    assert response.status_code == 404

    response = await client.get("/api/v1/claims", headers=headers_for(actors.supplier))
    assert response.json()["meta"]["total"] == 0


@pytest.mark.asyncio
async def test_suppliers_cannot_read_the_audit_trail(client, actors) -> None:
    response = await client.get("/api/v1/audit", headers=headers_for(actors.supplier))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_rating_request_rating_and_acceptance(client, actors, notifier) -> None:
    response = await client.post(
        "/api/v1/ratings/requests",
        json={"supplierId": ACME_ID, "projectId": PROJECT_ID, "description": "Please rate our crane work"},
        headers=headers_for(actors.supplier),
    )
    assert response.status_code == 201, response.text
    request_id = response.json()["data"]["id"]

    response = await client.post(
        "/api/v1/ratings", json={**RATING_BODY, "requestId": request_id}, headers=headers_for(actors.engineer)
    )
    assert response.status_code == 201, response.text
    rating = response.json()["data"]
    assert Decimal(rating["overallRating"]) == Decimal("4.6")
    assert rating["acceptedBySupplier"] is False

    response = await client.get(
        "/api/v1/ratings/requests", params={"status": "completed"}, headers=headers_for(actors.supplier)
    )
    assert [r["id"] for r in response.json()["data"]] == [request_id]

    response = await _transition(
        client, actors.supplier, rating["id"], "accept", "Thanks", entity_type="supplier_rating"
    )
    assert response.status_code == 200, response.text
    assert response.json()["data"]["acceptedBySupplier"] is True

    response = await _transition(client, actors.supplier, rating["id"], "accept", entity_type="supplier_rating")
    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "NOT_ELIGIBLE"
    assert error["details"]["reason"] == "already_accepted"

    assert [n.kind for n in notifier.sent] == [
        NotificationKind.RATING_REQUESTED,
        NotificationKind.RATING_COMPLETED,
        NotificationKind.RATING_ACCEPTED,
    ]


@pytest.mark.asyncio
async def test_completed_rating_request_cannot_be_reused(client, actors) -> None:
    response = await client.post(
        "/api/v1/ratings/requests",
        json={"supplierId": ACME_ID, "projectId": PROJECT_ID, "description": "Please rate our crane work"},
        headers=headers_for(actors.supplier),
    )
    request_id = response.json()["data"]["id"]
    body = {**RATING_BODY, "requestId": request_id}

    first = await client.post("/api/v1/ratings", json=body, headers=headers_for(actors.engineer))
    assert first.status_code == 201
    second = await client.post("/api/v1/ratings", json=body, headers=headers_for(actors.engineer))
    assert second.status_code == 409


@pytest.mark.asyncio
async def test_only_raters_submit_ratings(client, actors) -> None:
    response = await client.post("/api/v1/ratings", json=RATING_BODY, headers=headers_for(actors.purchasing))
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


@pytest.mark.asyncio
async def test_workflow_view_is_hidden_from_other_suppliers(client, actors) -> None:
    claim = await _create_claim(client, actors)
    response = await client.get(
        f"/api/v1/transitions/claim/{claim['id']}", headers=headers_for(actors.other_supplier)
    )
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"
