import logging
import os
from uuid import uuid4

import click
from flask import Flask, jsonify, request

from mortgage_sim.engine import simulate, subsidy_breakdown
from mortgage_sim.errors import SimulationInputError
from mortgage_sim.formatter import serialize_input, serialize_result
from mortgage_sim.main import input_from_mapping
from mortgage_sim_web.simulation_store import create_store_from_env

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["MAX_SIMULATIONS_PER_USER"] = int(os.environ.get("MAX_SIMULATIONS_PER_USER", "0")) or None
simulation_store = create_store_from_env(
    os.environ.get("SIMULATION_DATABASE_URL"), app.config["MAX_SIMULATIONS_PER_USER"]
)

SUBSIDY_FIELDS = (
    "price",
    "income",
    "elderly",
    "displaced",
    "returning_migrant",
    "disability",
    "housing_type",
    "currency",
)


def _error(message: str, status: int = 400):
    return jsonify({"error": message}), status


def _message(exc: Exception) -> str:
    if isinstance(exc, click.ClickException):
        return exc.format_message()
    return str(exc)


def _json_payload() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise click.BadParameter("Request body must be a JSON object")
    return payload


def _text_field(payload: dict, key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise click.BadParameter(f"{key} must be a non-empty string")
    return value.strip()


def _run_analysis(simulation_data: dict) -> dict:
    config = input_from_mapping(simulation_data)
    result = simulate(config)
    return {"input": serialize_input(config), "results": serialize_result(result)}


@app.get("/health")
def health():
    return jsonify({"status": "ok"})


@app.post("/api/simulate")
def simulate_loan():
    try:
        analysis = _run_analysis(_json_payload())
    except (click.BadParameter, SimulationInputError) as exc:
        return _error(_message(exc))
    return jsonify(analysis)


@app.post("/api/subsidy")
def subsidy():
    try:
        payload = _json_payload()
        options = {key: payload[key] for key in SUBSIDY_FIELDS if key in payload}
        unknown = set(payload) - set(SUBSIDY_FIELDS)
        if unknown:
            raise click.BadParameter(f"Unknown fields: {', '.join(sorted(unknown))}")
        details = subsidy_breakdown(input_from_mapping({"rate": 0.0, **options}))
    except click.BadParameter as exc:
        return _error(_message(exc))
    return jsonify(details)


@app.post("/api/simulations")
def save_simulation():
    try:
        payload = _json_payload()
        user_email = _text_field(payload, "user_email")
        name = _text_field(payload, "name")
        simulation_data = payload.get("simulation_data")
        if not isinstance(simulation_data, dict):
            raise click.BadParameter("simulation_data must be a JSON object")
        is_base_scenario = payload.get("is_base_scenario", False)
        if not isinstance(is_base_scenario, bool):
            raise click.BadParameter("is_base_scenario must be true or false")
        analysis = _run_analysis(simulation_data)
    except (click.BadParameter, SimulationInputError) as exc:
        return _error(_message(exc))
    stored = simulation_store.add_simulation(
        user_email,
        uuid4().hex,
        name,
        simulation_data,
        analysis["results"],
        is_base_scenario,
    )
    return jsonify({"simulation": stored}), 201


@app.get("/api/simulations")
def list_simulations():
    user_email = request.args.get("user_email", "").strip()
    if not user_email:
        return _error("user_email is required")
    return jsonify({"simulations": simulation_store.list_simulations(user_email)})


@app.get("/api/simulations/<simulation_id>")
def get_simulation(simulation_id: str):
    user_email = request.args.get("user_email", "").strip()
    simulation = simulation_store.get_simulation(user_email, simulation_id)
    if simulation is None:
        return _error("Simulation not found", 404)
    return jsonify({"simulation": simulation})


@app.delete("/api/simulations/<simulation_id>")
def delete_simulation(simulation_id: str):
    user_email = request.args.get("user_email", "").strip()
    if not simulation_store.remove_simulation(user_email, simulation_id):
        return _error("Simulation not found", 404)
    return jsonify({"success": True})


if __name__ == "__main__":
    logger.info("Starting mortgage simulator API...")
    app.run(host="0.0.0.0", port=8710, debug=True)
