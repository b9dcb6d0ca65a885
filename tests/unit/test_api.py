"""Tests for the REST API."""

import pytest
from fastapi.testclient import TestClient

from zkpool.api.routes import create_app
from zkpool.storage import EventStore
from zkpool.utils.encoding import field_to_hex
from zkpool.utils.field import FIELD_MODULUS

DENOMINATION = 10**17
ALICE = "0x" + "a1" * 20
MALLORY = "0x" + "ee" * 20


@pytest.fixture
def store(tmp_path):
    store = EventStore(f"sqlite:///{tmp_path / 'api.db'}")
    store.create_tables()
    return store


@pytest.fixture
def client(pool, store):
    return TestClient(create_app(pool, store))


def deposit(client, commitment):
    return client.post("/deposit", json={"commitment": field_to_hex(commitment), "amount": DENOMINATION})


def withdrawal_body(prover, root, nullifier_hash, claimant, signer=None):
    proof = prover.prove(root, nullifier_hash, signer or claimant)
    return {
        "proof": proof.to_dict(),
        "root": field_to_hex(root),
        "nullifier_hash": field_to_hex(nullifier_hash),
        "claimant": claimant,
    }


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "operational"


class TestDepositEndpoint:
    """Tests for POST /deposit."""

    def test_deposit(self, client, store):
        response = deposit(client, 1234)

        assert response.status_code == 200
        data = response.json()
        assert data["leaf_index"] == 0
        assert data["commitment"] == field_to_hex(1234)
        assert len(data["tree_path"]) == 5
        assert data["root"] == data["tree_path"][-1]
        assert store.deposit_count() == 1

    def test_reused_commitment_conflict(self, client):
        deposit(client, 1234)
        response = deposit(client, 1234)
        assert response.status_code == 409
        assert response.json()["code"] == "CommitmentReused"

    def test_wrong_amount(self, client):
        response = client.post("/deposit", json={"commitment": "0x01", "amount": 5})
        assert response.status_code == 400
        assert response.json()["code"] == "WrongDenomination"

    def test_out_of_field(self, client):
        response = deposit(client, FIELD_MODULUS)
        assert response.status_code == 400
        assert response.json()["code"] == "OutOfField"

    def test_unparseable_commitment(self, client):
        response = client.post("/deposit", json={"commitment": "xyz", "amount": DENOMINATION})
        assert response.status_code == 400


class TestWithdrawEndpoint:
    """Tests for POST /withdraw."""

    def test_withdraw(self, client, pool, prover, store):
        root = pool.deposit(1, DENOMINATION).root
        response = client.post("/withdraw", json=withdrawal_body(prover, root, 55, ALICE))

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "paid"
        assert data["claimant"] == ALICE
        assert data["amount"] == DENOMINATION
        assert store.is_spent(55)

    def test_double_spend_conflict(self, client, pool, prover):
        root = pool.deposit(1, DENOMINATION).root
        body = withdrawal_body(prover, root, 55, ALICE)
        client.post("/withdraw", json=body)

        response = client.post("/withdraw", json=body)
        assert response.status_code == 409
        assert response.json()["code"] == "NullifierAlreadyUsed"

    def test_claimant_swap_rejected(self, client, pool, prover):
        root = pool.deposit(1, DENOMINATION).root
        response = client.post("/withdraw", json=withdrawal_body(prover, root, 55, MALLORY, signer=ALICE))
        assert response.status_code == 400
        assert response.json()["code"] == "InvalidProof"

    def test_unknown_root(self, client, prover):
        response = client.post("/withdraw", json=withdrawal_body(prover, 77, 55, ALICE))
        assert response.status_code == 400
        assert response.json()["code"] == "StaleOrUnknownRoot"

    def test_bad_claimant(self, client, pool, prover):
        root = pool.deposit(1, DENOMINATION).root
        body = withdrawal_body(prover, root, 55, ALICE)
        body["claimant"] = "0x1234"
        response = client.post("/withdraw", json=body)
        assert response.status_code == 400


class TestQueries:
    """Tests for read-only endpoints."""

    def test_state(self, client):
        deposit(client, 1)
        data = client.get("/state").json()
        assert data["next_index"] == 1
        assert data["capacity"] == 16
        assert data["num_commitments"] == 1

    def test_roots(self, client):
        root = deposit(client, 1).json()["root"]
        data = client.get("/roots").json()
        assert data["roots"] == [root]
        assert data["size"] == 30

        assert client.get(f"/roots/{root}").json()["known"] is True
        assert client.get("/roots/0x05").json()["known"] is False

    def test_commitment_and_nullifier_status(self, client, pool, prover):
        root = deposit(client, 1).json()["root"]
        assert client.get(f"/commitments/{field_to_hex(1)}").json()["used"] is True
        assert client.get("/commitments/0x02").json()["used"] is False

        client.post("/withdraw", json=withdrawal_body(prover, int(root, 16), 55, ALICE))
        assert client.get("/nullifiers/55").json()["used"] is True
        assert client.get("/nullifiers/56").json()["used"] is False
