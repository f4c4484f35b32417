import pytest

from mortgage_sim_web import app as web_app
from mortgage_sim_web.simulation_store import SimulationStore

LOAN = {
    "price": 200_000,
    "down_payment": 20,
    "down_payment_type": "percentage",
    "rate": 10,
    "term": 5,
    "term_unit": "years",
    "income": 6_000,
    "start_date": "2024-01",
}


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(web_app, "simulation_store", SimulationStore(f"sqlite:///{tmp_path / 'api.sqlite3'}"))
    web_app.app.config["TESTING"] = True
    return web_app.app.test_client()


def test_health(client):
    assert client.get("/health").get_json() == {"status": "ok"}


def test_simulate_returns_results_and_schedule(client):
    response = client.post("/api/simulate", json=LOAN)
    assert response.status_code == 200
    body = response.get_json()
    assert body["results"]["financed_amount"] == 139_100
    assert body["results"]["subsidy"] == 20_900
    assert len(body["results"]["schedule"]) == 60
    assert body["input"]["term_unit"] == "years"


def test_simulate_rejects_invalid_principal(client):
    response = client.post("/api/simulate", json={**LOAN, "down_payment": 190_000, "down_payment_type": "amount"})
    assert response.status_code == 400
    assert "exceed the property price" in response.get_json()["error"]


def test_simulate_rejects_non_object_body(client):
    response = client.post("/api/simulate", json=[1, 2, 3])
    assert response.status_code == 400


def test_subsidy_endpoint(client):
    response = client.post("/api/subsidy", json={"price": 700_000, "income": 4_000})
    assert response.status_code == 200
    body = response.get_json()
    assert body["band"] == "R5"
    assert body["bonus"] == 0


def test_simulation_crud(client):
    created = client.post(
        "/api/simulations",
        json={"user_email": "ana@example.com", "name": "Base", "simulation_data": LOAN, "is_base_scenario": True},
    )
    assert created.status_code == 201
    simulation = created.get_json()["simulation"]
    assert simulation["is_base_scenario"] is True
    assert simulation["results"]["term_months"] == 60

    listed = client.get("/api/simulations", query_string={"user_email": "ana@example.com"})
    assert [s["id"] for s in listed.get_json()["simulations"]] == [simulation["id"]]

    fetched = client.get(f"/api/simulations/{simulation['id']}", query_string={"user_email": "ana@example.com"})
    assert fetched.get_json()["simulation"]["name"] == "Base"

    other_user = client.get(f"/api/simulations/{simulation['id']}", query_string={"user_email": "luis@example.com"})
    assert other_user.status_code == 404

    deleted = client.delete(f"/api/simulations/{simulation['id']}", query_string={"user_email": "ana@example.com"})
    assert deleted.get_json() == {"success": True}
    assert client.get("/api/simulations", query_string={"user_email": "ana@example.com"}).get_json() == {"simulations": []}


def test_save_requires_email_and_name(client):
    response = client.post("/api/simulations", json={"name": "Base", "simulation_data": LOAN})
    assert response.status_code == 400


def test_list_requires_email(client):
    assert client.get("/api/simulations").status_code == 400


def test_simulate_rejects_nan_rate(client):
    body = '{"price": 200000, "rate": NaN, "term": 60}'
    response = client.post("/api/simulate", data=body, content_type="application/json")
    assert response.status_code == 400
    assert "finite" in response.get_json()["error"]


@pytest.mark.parametrize("field, value", [("user_email", 123), ("name", ["Base"]), ("user_email", "   ")])
def test_save_rejects_non_string_email_or_name(client, field, value):
    payload = {"user_email": "ana@example.com", "name": "Base", "simulation_data": LOAN, field: value}
    response = client.post("/api/simulations", json=payload)
    assert response.status_code == 400
    assert field in response.get_json()["error"]


def test_save_rejects_non_boolean_base_flag(client):
    payload = {"user_email": "ana@example.com", "name": "Base", "simulation_data": LOAN, "is_base_scenario": "false"}
    assert client.post("/api/simulations", json=payload).status_code == 400


def test_subsidy_endpoint_reads_string_false_as_false(client):
    response = client.post("/api/subsidy", json={"price": 100_000, "income": 9_000, "elderly": "false"})
    assert response.status_code == 200
    assert response.get_json()["bonus"] == 22_800


def test_subsidy_endpoint_rejects_unclear_flag(client):
    response = client.post("/api/subsidy", json={"price": 100_000, "elderly": "maybe"})
    assert response.status_code == 400
