"""Command-line interface for promptground."""

import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")
    sys.stderr.reconfigure(encoding="utf-8")
    os.environ["PYTHONIOENCODING"] = "utf-8"

from loguru import logger

from .config import CONFIG_FILENAME, Settings, UserConfigLoader
from .models import (
    AVAILABLE_METRICS,
    SUPPORTED_PROFILES,
    Feedback,
    Message,
    OptimizationConfig,
    Sample,
)

if TYPE_CHECKING:
    from .core.events import EventSink
    from .core.ui.progress_tracker import ProgressTracker

DEFAULT_PROFILE = "balanced"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000

EXAMPLE_CONFIG = f"""\
# promptground configuration
# API key: set PROMPTGROUND_API_KEY or OPENAI_API_KEY in environment
# For local models (SGLang, vLLM, Ollama) set PROMPTGROUND_BASE_URL.

default_model: gpt-4o-mini
# system_prompt: You are a helpful assistant.

# Tools available to the assistant while trajectories are regenerated.
# tools:
#   - name: lookup_order
#     description: Look up an order by id
#     handler: my_package.tools:lookup_order
#     parameters:
#       type: object
#       properties:
#         order_id: {{type: string}}
#       required: [order_id]

# Optimization defaults; CLI flags override these.
optimize:
  # Profile: fast | balanced | quality | advanced
  #   fast     - 5 rollouts, batch of 2, short timeouts
  #   balanced - 10 rollouts, batch of 3 (default)
  #   quality  - 20 rollouts, batch of 6, long timeouts
  #   advanced - no presets, you control every parameter
  profile: {DEFAULT_PROFILE}
  # batch_size: 3
  # num_rollouts: 10
  # reflection_model: gpt-4o
  # selected_metrics: [{", ".join(AVAILABLE_METRICS)}]
"""

EXAMPLE_PROMPT = "You are a helpful customer support assistant. Answer clearly and politely."

EXAMPLE_SAMPLES = [
    Sample(
        id="example-refund",
        messages=[
            Message(role="user", content="How do I get a refund for a damaged item?"),
            Message(
                role="assistant",
                content=(
                    "I'm sorry your item arrived damaged. Reply with your order number and a photo "
                    "of the damage and we will issue a refund within 3 business days."
                ),
            ),
        ],
        feedback=Feedback(rating="positive", comment="Empathetic and gives concrete next steps."),
    ),
    Sample(
        id="example-shipping",
        messages=[
            Message(role="user", content="Where is my package?"),
            Message(role="assistant", content="It is somewhere in transit."),
        ],
        feedback=Feedback(rating="negative", comment="Vague; should ask for the order number and explain tracking."),
    ),
]


def main(argv: Optional[List[str]] = None) -> int:
    """promptground CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command == "init":
        return cmd_init(args)
    if args.command == "optimize":
        return cmd_optimize(args)
    if args.command == "runs":
        return cmd_runs(args)
    if args.command == "serve":
        return cmd_serve(args)
    parser.print_help()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="promptground",
        description="promptground - reflective prompt optimization from rated conversations",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--data-dir", type=str, help="Data directory (default: .promptground/data)")
    parser.add_argument("--config", type=str, help=f"User config file (default: {CONFIG_FILENAME})")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("init", help="Create an example data directory and config")

    opt_parser = subparsers.add_parser("optimize", help="Run prompt optimization")
    opt_parser.add_argument(
        "--profile",
        type=str,
        choices=sorted(SUPPORTED_PROFILES),
        help="Optimization profile: fast|balanced|quality|advanced",
    )
    opt_parser.add_argument("--model", type=str, help="Model that regenerates trajectories")
    opt_parser.add_argument("--reflection-model", type=str, help="Model that judges and rewrites")
    opt_parser.add_argument("--batch-size", type=int, help="Samples per rollout")
    opt_parser.add_argument("--rollouts", type=int, help="Number of rollouts")
    opt_parser.add_argument(
        "--metrics",
        type=str,
        help=f"Comma-separated metrics (default: {','.join(AVAILABLE_METRICS)})",
    )
    opt_parser.add_argument("--structured", action="store_true", default=None, help="Use schema.json output")
    opt_parser.add_argument("--group", type=str, help="Sample group id")
    opt_parser.add_argument("--seed", type=int, help="Seed for batch sampling")
    opt_parser.add_argument("--resume", type=str, metavar="RUN_ID", help="Continue a previous run")
    opt_parser.add_argument("--json", action="store_true", help="Also print progress events as JSON lines on stdout")
    opt_parser.add_argument("--base-url", type=str, help="OpenAI-compatible API base URL")
    opt_parser.add_argument("--api-key", type=str, help="API key (or set OPENAI_API_KEY)")

    runs_parser = subparsers.add_parser("runs", help="Inspect optimization runs")
    runs_sub = runs_parser.add_subparsers(dest="runs_command")
    runs_sub.add_parser("list", help="List runs, newest first")
    show_parser = runs_sub.add_parser("show", help="Show one run")
    show_parser.add_argument("run_id")
    delete_parser = runs_sub.add_parser("delete", help="Delete a run")
    delete_parser.add_argument("run_id")
    plot_parser = runs_sub.add_parser("plot", help="Render a run to PNG")
    plot_parser.add_argument("run_id")
    plot_parser.add_argument("--output", type=str, help="Output PNG path")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP server")
    serve_parser.add_argument("--host", type=str, default=DEFAULT_HOST, help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Port to listen on")
    return parser


def cmd_init(args: argparse.Namespace) -> int:
    """Create an example data directory and config file."""
    from .core.state.data_store import PROMPT_FILENAME, SAMPLES_FILENAME, DataStore

    settings = _settings(args)
    data_dir = settings.resolve_data_dir()
    store = DataStore(data_dir)

    if (data_dir / PROMPT_FILENAME).exists():
        logger.warning(f"Skipped (already exists): {data_dir / PROMPT_FILENAME}")
    else:
        store.save_prompt(EXAMPLE_PROMPT)
        logger.success(f"Created: {data_dir / PROMPT_FILENAME}")

    if (data_dir / SAMPLES_FILENAME).exists():
        logger.warning(f"Skipped (already exists): {data_dir / SAMPLES_FILENAME}")
    else:
        store.save_samples(EXAMPLE_SAMPLES)
        logger.success(f"Created: {data_dir / SAMPLES_FILENAME}")

    config_path = settings.resolve_config_path()
    if config_path.exists():
        logger.warning(f"Skipped (already exists): {config_path}")
    else:
        config_path.write_text(EXAMPLE_CONFIG, encoding="utf-8")
        logger.success(f"Created: {config_path}")

    print("\nProject initialized! Next steps:")
    print(f"  1. Edit {config_path.name}: set default_model and tools")
    print(f"  2. Edit {data_dir / PROMPT_FILENAME} with your seed prompt")
    print(f"  3. Replace {data_dir / SAMPLES_FILENAME} with rated conversations")
    print("  4. Run: promptground optimize")
    return 0


def cmd_optimize(args: argparse.Namespace) -> int:
    """Run GEPA optimization."""
    from .clients import LLMClient
    from .core.engine.optimizer import GEPAOptimizer
    from .core.io.result_builder import ResultBuilder
    from .core.state.data_store import DataStore
    from .core.state.run_store import RunStore
    from .core.ui.progress_tracker import ProgressTracker

    settings = _settings(args)
    user_config = UserConfigLoader(settings.resolve_config_path())
    try:
        config = build_optimization_config(user_config.load().optimize, args, user_config.load().default_model)
    except ValueError as e:
        logger.error(str(e))
        return 1

    if not settings.api_key:
        if settings.base_url:
            logger.info("Using local endpoint without API key.")
        else:
            logger.error("No API key. Set PROMPTGROUND_API_KEY / OPENAI_API_KEY or use --api-key.")
            return 1

    data_dir = settings.resolve_data_dir()
    logger.info(f"Using data directory {data_dir}")

    tracker = ProgressTracker(num_rollouts=config.num_rollouts)
    sink = build_event_sink(tracker, json_lines=args.json)

    optimizer = GEPAOptimizer(
        llm_client=LLMClient(settings),
        data_store=DataStore(data_dir),
        run_store=RunStore(data_dir),
        user_config=user_config,
        sink=sink,
    )

    try:
        with tracker:
            run = asyncio.run(optimizer.optimize(config, resume_run_id=args.resume))
    except KeyboardInterrupt:
        optimizer.abort("Interrupted by user")
        logger.warning("Optimization interrupted by user")
        return 130

    if run is None:
        return 1
    if not args.json:
        ResultBuilder().log_result(run, optimizer.collection)
    return 0 if run.status == "completed" else 1


def build_event_sink(tracker: "ProgressTracker", json_lines: bool = False) -> "EventSink":
    """Progress bar on stderr, plus one JSON line per event on stdout when requested."""
    from .core.events import CallbackSink, FanoutSink

    if not json_lines:
        return tracker
    return FanoutSink(tracker, CallbackSink(lambda event: print(event.to_json(), flush=True)))


def cmd_runs(args: argparse.Namespace) -> int:
    """List, show, delete or plot stored runs."""
    from .core.io.result_builder import ResultBuilder
    from .core.state.run_store import RunStore

    store = RunStore(_settings(args).resolve_data_dir())
    builder = ResultBuilder()

    if args.runs_command in (None, "list"):
        runs = store.list_runs()
        if not runs:
            logger.info(f"No runs in {store.path}")
            return 0
        builder.console.print(builder.list_table(runs))
        return 0

    run = store.get(args.run_id)
    if run is None:
        logger.error(f"Run {args.run_id} not found")
        return 1

    if args.runs_command == "show":
        builder.print_run(run)
    elif args.runs_command == "delete":
        store.delete(run.id)
        logger.success(f"Deleted run {run.id}")
    elif args.runs_command == "plot":
        from .visualization import PLOT_FILENAME, RunPlotter

        output = Path(args.output) if args.output else store.run_dir(run.id) / PLOT_FILENAME
        RunPlotter().render(run, output)
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the promptground HTTP server."""
    import uvicorn

    from .server import create_app

    settings = _settings(args)
    app = create_app(settings=settings)
    logger.info(f"Starting promptground server on http://{args.host}:{args.port}")
    logger.info(f"Data directory: {app.state.data_dir}")
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def build_optimization_config(
    yaml_data: Dict[str, Any],
    args: argparse.Namespace,
    default_model: Optional[str] = None,
) -> OptimizationConfig:
    """Merge config using 3 layers: profile defaults, YAML ``optimize:`` section, CLI flags."""
    result = dict(yaml_data or {})
    cli_overrides = {
        "profile": args.profile,
        "optimization_model": args.model,
        "reflection_model": args.reflection_model,
        "batch_size": args.batch_size,
        "num_rollouts": args.rollouts,
        "selected_metrics": _split_metrics(args.metrics),
        "use_structured_output": args.structured,
        "sample_group_id": args.group,
        "seed": args.seed,
    }
    for key, value in cli_overrides.items():
        if value is not None:
            result[key] = value

    profile = str(result.pop("profile", None) or DEFAULT_PROFILE).strip().lower()
    if default_model:
        result.setdefault("optimization_model", default_model)
        result.setdefault("reflection_model", default_model)

    overrides = {
        key: value
        for key, value in result.items()
        if key in OptimizationConfig.model_fields and value is not None
    }
    ignored = sorted(set(result) - set(overrides))
    if ignored:
        logger.warning(f"Ignoring unknown optimize settings: {', '.join(ignored)}")
    return OptimizationConfig.from_profile(profile, **overrides)


def _split_metrics(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    return [name.strip() for name in value.split(",") if name.strip()]


def _settings(args: argparse.Namespace) -> Settings:
    """Settings from environment, with CLI flags taking precedence."""
    overrides: Dict[str, Any] = {}
    if args.data_dir:
        overrides["data_dir"] = Path(args.data_dir)
    if args.config:
        overrides["config_path"] = Path(args.config)
    if getattr(args, "base_url", None):
        overrides["base_url"] = args.base_url
    if getattr(args, "api_key", None):
        overrides["api_key"] = args.api_key
    return Settings(**overrides)


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


if __name__ == "__main__":
    sys.exit(main())
