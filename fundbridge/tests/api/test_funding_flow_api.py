from decimal import Decimal

from conftest import (
    AVALANCHE,
    DEST_TOKEN,
    OWNER,
    PAYER,
    POLYGON,
    RECIPIENT,
    STRANGER,
    TOKEN,
    transfer_log,
    tx,
)

API = "/api/v1"


def units(n):
    return n * 10**18


def _create_project(client):
    r = client.post(
        f"{API}/projects",
        json={
            "title": "Community Hall",
            "ownerAddress": OWNER,
            "fundingChainId": POLYGON,
            "settlementChainId": AVALANCHE,
            "settlementRecipientAddress": RECIPIENT,
            "settlementTokenAddress": DEST_TOKEN,
        },
    )
    assert r.status_code == 200, r.text
    return r.json()["projectId"]


def _contribute(client, chain, project_id, h, amount):
    chain.add_receipt(h, [transfer_log(TOKEN, PAYER, RECIPIENT, units(amount))])
    return client.post(
        f"{API}/contributions",
        json={
            "projectId": project_id,
            "chainId": POLYGON,
            "currency": "JPYC",
            "txHash": h,
            "fromAddress": PAYER,
            "toAddress": RECIPIENT,
            "amount": str(amount),
        },
    )


def test_full_funding_bridge_and_distribution(client, chain):
    pid = _create_project(client)

    r = client.put(f"{API}/projects/{pid}/goal", json={"address": OWNER, "targetAmount": 1000})
    assert r.status_code == 200, r.text

    r = _contribute(client, chain, pid, tx(1), 999)
    assert r.json()["verified"] is True

    r = client.get(f"{API}/projects/{pid}/progress")
    assert r.json()["confirmedTotal"] == 999
    assert r.json()["achievedAt"] is None

    r = client.post(f"{API}/projects/{pid}/bridge/prepare", json={"address": OWNER})
    assert r.status_code == 400
    assert r.json()["detail"] == "BRIDGE_REQUIRES_GOAL_ACHIEVED"

    r = _contribute(client, chain, pid, tx(2), 1)
    assert r.json()["contribution"]["status"] == "CONFIRMED"

    r = client.get(f"{API}/projects/{pid}")
    assert r.json()["status"] == "GOAL_ACHIEVED"

    r = client.post(f"{API}/projects/{pid}/bridge/prepare", json={"address": OWNER})
    assert r.status_code == 200, r.text
    prepared = r.json()
    assert Decimal(prepared["snapshotAmountDecimal"]) == 1000
    assert prepared["providerInstructions"]["kind"] == "WORMHOLE_UI"
    run_id = prepared["bridgeRunId"]

    r = client.post(
        f"{API}/projects/{pid}/bridge/run",
        json={"address": OWNER, "bridgeRunId": run_id, "destinationTxHash": tx(3)},
    )
    assert r.status_code == 200, r.text

    r = client.post(f"{API}/projects/{pid}/bridge/reverify", json={"address": OWNER})
    assert r.json()["verified"] is False

    chain.add_receipt(tx(3), [transfer_log(DEST_TOKEN, STRANGER, RECIPIENT, units(1000))])
    r = client.post(f"{API}/projects/{pid}/bridge/reverify", json={"address": OWNER, "bridgeRunId": run_id})
    assert r.json()["confirmed"] is True

    r = client.get(f"{API}/projects/{pid}")
    assert r.json()["status"] == "BRIDGED"
    assert r.json()["bridgedAtIso"]

    r = client.post(f"{API}/projects/{pid}/bridge/prepare", json={"address": OWNER})
    assert r.status_code == 409
    assert r.json()["detail"] == "ALREADY_BRIDGED"

    plan = {"recipients": [{"address": STRANGER, "amount": "1000"}]}
    r = client.put(f"{API}/projects/{pid}/distribution/plan", json={"address": OWNER, "plan": plan})
    assert r.status_code == 200, r.text

    r = client.get(f"{API}/projects/{pid}/distribution/plan")
    assert r.json()["plan"] == plan

    r = client.post(
        f"{API}/projects/{pid}/distribution/execute",
        json={"address": OWNER, "chainId": AVALANCHE, "txHashes": [tx(4)]},
    )
    assert r.status_code == 200, r.text
    assert r.json()["distributed"] is True

    r = client.get(f"{API}/projects/{pid}/summary")
    body = r.json()
    assert body["project"]["status"] == "DISTRIBUTED"
    assert len(body["lastBridgeRuns"]) == 1
    assert len(body["lastDistributionRuns"]) == 2


def test_pending_contribution_then_reverify(client, chain):
    pid = _create_project(client)
    body = {
        "projectId": pid,
        "chainId": POLYGON,
        "txHash": tx(10),
        "fromAddress": PAYER,
        "toAddress": RECIPIENT,
        "amount": "5",
    }

    r = client.post(f"{API}/contributions", json=body)
    assert r.status_code == 200
    assert r.json()["verified"] is False
    assert r.json()["reason"] == "RECEIPT_NOT_FOUND_YET"

    chain.add_receipt(tx(10), [transfer_log(TOKEN, PAYER, RECIPIENT, units(5))])
    r = client.post(f"{API}/contributions/reverify", json={"txHash": tx(10)})
    assert r.json()["verified"] is True

    r = client.get(f"{API}/projects/{pid}/contributions", params={"status": "CONFIRMED"})
    assert [c["txHash"] for c in r.json()["items"]] == [tx(10)]


def test_contribution_input_is_validated(client):
    pid = _create_project(client)
    base = {
        "projectId": pid,
        "chainId": POLYGON,
        "txHash": tx(20),
        "fromAddress": PAYER,
        "toAddress": RECIPIENT,
        "amount": "1",
    }

    for bad in (
        {"amount": "-1"},
        {"amount": "1e3"},
        {"amount": "0." + "1" * 19},
        {"amount": "1_000"},
        {"txHash": "0x1234"},
        {"toAddress": "not-an-address"},
        {"unexpected": True},
    ):
        r = client.post(f"{API}/contributions", json={**base, **bad})
        assert r.status_code == 422, bad


def test_unknown_project_is_404(client):
    r = client.get(f"{API}/projects/999/progress")
    assert r.status_code == 404
    assert r.json()["detail"] == "PROJECT_NOT_FOUND"


def test_unsupported_chain_is_a_configuration_error(client):
    pid = _create_project(client)
    r = client.post(
        f"{API}/contributions",
        json={
            "projectId": pid,
            "chainId": 5,
            "txHash": tx(30),
            "fromAddress": PAYER,
            "toAddress": RECIPIENT,
            "amount": "1",
        },
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "TOKEN_NOT_CONFIGURED_ON_CHAIN"


def test_non_owner_cannot_act(client):
    pid = _create_project(client)

    r = client.put(f"{API}/projects/{pid}/goal", json={"address": STRANGER, "targetAmount": 10})
    assert r.status_code == 403

    r = client.post(
        f"{API}/projects/{pid}/purposes",
        json={"address": STRANGER, "code": "roof", "label": "Roof"},
    )
    assert r.status_code == 403


def test_purposes(client):
    pid = _create_project(client)
    r = client.post(
        f"{API}/projects/{pid}/purposes",
        json={"address": OWNER, "code": "roof", "label": "Roof", "orderIndex": 1},
    )
    assert r.status_code == 200, r.text

    r = client.post(
        f"{API}/projects/{pid}/purposes",
        json={"address": OWNER, "code": "roof", "label": "Again"},
    )
    assert r.status_code == 409

    r = client.get(f"{API}/projects/{pid}/purposes")
    assert [p["code"] for p in r.json()["items"]] == ["roof"]
