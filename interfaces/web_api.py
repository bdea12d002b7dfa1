"""
Web API for the Deadlock Detection Simulator.

Flask application exposing simulation sessions to the dashboard. Every
failure is returned as JSON {"error": message}.
"""

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from models.errors import SimulationError, ValidationError, InternalError
from models.registry import SimulationRegistry
from algorithms import allocation, detection
from utils.config import SimulatorConfig
from utils.logger import get_logger

logger = get_logger("web")


def _json_body() -> dict:
    """Parse the request body as a JSON object."""
    data = request.get_json(silent=True)
    if data is None:
        data = {} if not request.get_data() else None
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _required(data: dict, key: str):
    if data.get(key) is None:
        raise ValidationError(f"Missing required field '{key}'")
    return data[key]


def create_app(registry: SimulationRegistry = None, config: SimulatorConfig = None) -> Flask:
    """
    Build the Flask application.

    Args:
        registry: Simulation registry (a fresh one if omitted)
        config: Runtime configuration (environment defaults if omitted)
    """
    if config is None:
        config = SimulatorConfig.from_env()
    if registry is None:
        registry = SimulationRegistry(event_log_limit=config.event_log_limit)

    app = Flask(__name__)
    app.config['SIMULATOR'] = config
    app.extensions['simulation_registry'] = registry
    CORS(app)

    @app.errorhandler(SimulationError)
    def handle_simulation_error(error: SimulationError):
        if isinstance(error, InternalError):
            logger.error("Internal error on %s %s: %s", request.method, request.path, error.message)
            return jsonify({"error": "Internal simulation error"}), 500
        logger.info("%s %s rejected (%s): %s", request.method, request.path,
                    type(error).__name__, error.message)
        return jsonify({"error": error.message}), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error"}), 500

    @app.route('/api/health', methods=['GET'])
    def health():
        return jsonify({"status": "ok", "simulations": len(registry)})

    @app.route('/api/simulation/create', methods=['POST'])
    def create_simulation():
        """Create a new simulation session"""
        data = _json_body()
        strategy = data.get('detection_strategy') or config.default_strategy
        simulation = registry.create(strategy)
        return jsonify({
            "simulation_id": simulation.simulation_id,
            "detection_strategy": simulation.detection_strategy,
        }), 201

    @app.route('/api/simulation/<sim_id>/process', methods=['POST'])
    def add_process(sim_id):
        """Add a process to a simulation"""
        simulation = registry.get(sim_id)
        data = _json_body()
        process = simulation.add_process(_required(data, 'pid'), data.get('priority', 0))
        return jsonify({"status": "success", "process": process.to_dict()}), 201

    @app.route('/api/simulation/<sim_id>/resource', methods=['POST'])
    def add_resource(sim_id):
        """Add a resource to a simulation"""
        simulation = registry.get(sim_id)
        data = _json_body()
        resource = simulation.add_resource(_required(data, 'rid'), _required(data, 'instances'))
        return jsonify({"status": "success", "resource": resource.to_dict()}), 201

    @app.route('/api/simulation/<sim_id>/request', methods=['POST'])
    def request_resource(sim_id):
        """Process requests one instance of a resource"""
        simulation = registry.get(sim_id)
        data = _json_body()
        outcome = allocation.request(
            simulation, _required(data, 'process'), _required(data, 'resource'))
        return jsonify({
            "status": "success",
            "allocation_result": outcome.allocation_result,
            "system_state": outcome.system_state,
        })

    @app.route('/api/simulation/<sim_id>/run', methods=['POST'])
    def run_simulation(sim_id):
        """Run detection passes"""
        simulation = registry.get(sim_id)
        data = _json_body()
        result = detection.run_detection(simulation, data.get('steps', 1))
        return jsonify({
            "status": "success",
            "state": result.verdict,
            "system_state": result.verdict,
            "iteration": result.iteration,
            "deadlocked": sorted(result.deadlocked),
        })

    @app.route('/api/simulation/<sim_id>/state', methods=['GET'])
    def get_state(sim_id):
        """Get the current verdict, iteration and graph of a simulation"""
        simulation = registry.get(sim_id)
        return jsonify(simulation.snapshot())

    return app
