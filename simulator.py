#!/usr/bin/env python3
"""
Deadlock Detection Simulator
Main entry point: serve the web API or replay a scenario file.
"""

import argparse
import sys
from typing import Optional, List

from models.registry import SimulationRegistry
from models.simulation import DETECTION_STRATEGIES, UNSAFE
from utils.config import SimulatorConfig
from utils.logger import SimulatorLogger
from utils.scenario_loader import (
    load_scenario, replay_events, get_scenario_description, ScenarioLoadError,
)
from algorithms.detection import run_detection, find_cycle

EXIT_SAFE = 0
EXIT_LOAD_ERROR = 1
EXIT_UNSAFE = 2


def run_scenario(scenario_path: str, steps: int, config: SimulatorConfig,
                 strategy: Optional[str] = None) -> int:
    """
    Replay a scenario file and run detection.

    Args:
        scenario_path: Path to scenario JSON file
        steps: Detection passes to run after the events
        config: Runtime configuration
        strategy: Overrides the scenario's detection strategy

    Returns:
        Process exit code (0 SAFE, 2 UNSAFE, 1 load error)
    """
    logger = SimulatorLogger(verbose=config.verbose, log_file=config.log_file)
    registry = SimulationRegistry(event_log_limit=config.event_log_limit)

    try:
        simulation, events = load_scenario(scenario_path, registry, strategy)
    except ScenarioLoadError as e:
        logger.log(f"Failed to load scenario: {e}", "error")
        logger.close()
        return EXIT_LOAD_ERROR

    logger.log(f"{'='*60}")
    logger.log(f"SIMULATION START: {simulation.detection_strategy.upper()}")
    logger.log(f"Scenario: {scenario_path}")
    description = get_scenario_description(scenario_path)
    if description:
        logger.log(f"Description: {description}")
    logger.log(f"{'='*60}")

    for event, outcome in replay_events(simulation, events):
        if event['type'] == 'detect':
            logger.log(f"Detection ({event.get('steps', 1)} pass(es)) - {outcome}")
        else:
            logger.log(f"{event['process']} {event['type']}s {event['resource']} - {outcome}")

    result = run_detection(simulation, steps)
    state = simulation.system_state()
    logger.log_system_state(result.iteration, state.display())
    print(state.display())

    if result.verdict == UNSAFE:
        logger.log_deadlock(result.iteration, sorted(result.deadlocked))
        cycle = find_cycle(state)
        if cycle:
            logger.log(f"Wait-for cycle: {' -> '.join(cycle)}")
    logger.log(f"System is {result.verdict} after iteration {result.iteration}")
    logger.close()
    return EXIT_UNSAFE if result.verdict == UNSAFE else EXIT_SAFE


def serve(config: SimulatorConfig) -> int:
    """Run the web API with the Flask development server."""
    # Local import keeps scenario replay usable without the web stack loaded.
    from interfaces.web_api import create_app

    logger = SimulatorLogger(verbose=config.verbose, log_file=config.log_file)
    logger.log(f"Serving deadlock simulator API on http://{config.host}:{config.port}/api")
    app = create_app(config=config)
    app.run(host=config.host, port=config.port, threaded=True)
    logger.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Deadlock Detection Simulator'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        default=None,
        help='Enable verbose logging'
    )
    parser.add_argument(
        '--log-file',
        type=str,
        help='Also write log output to this file'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    serve_parser = subparsers.add_parser('serve', help='Run the web API')
    serve_parser.add_argument('--host', type=str, help='Bind address')
    serve_parser.add_argument('--port', type=int, help='Bind port')
    serve_parser.add_argument(
        '--strategy',
        choices=DETECTION_STRATEGIES,
        help='Default detection strategy for new simulations'
    )

    run_parser = subparsers.add_parser('run', help='Replay a scenario file')
    run_parser.add_argument(
        '--scenario',
        type=str,
        required=True,
        help='Path to scenario JSON file'
    )
    run_parser.add_argument(
        '--steps',
        type=int,
        default=1,
        help='Detection passes to run after replay (default: 1)'
    )
    run_parser.add_argument(
        '--strategy',
        choices=DETECTION_STRATEGIES,
        help='Override the scenario detection strategy'
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the simulator."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = SimulatorConfig.from_env().override(
        verbose=args.verbose,
        log_file=args.log_file,
        host=getattr(args, 'host', None),
        port=getattr(args, 'port', None),
        default_strategy=args.strategy if args.command == 'serve' else None,
    )

    if args.command == 'serve':
        return serve(config)

    if args.steps < 1:
        parser.error('--steps must be >= 1')
    return run_scenario(args.scenario, args.steps, config, args.strategy)


if __name__ == '__main__':
    sys.exit(main())
