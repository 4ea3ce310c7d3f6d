# main.py
import argparse
import asyncio
import json
import os
import signal
import sys
from typing import List, Optional, Sequence, Set

import uvicorn

from vocant.adapters.aiohttp_client_adapter import AioHttpClientAdapter
from vocant.adapters.manifest_file_adapter import ManifestFileAdapter
from vocant.adapters.retry_tenacity import TenacityRetryAdapter
from vocant.adapters.web.fastapi import create_app
from vocant.core.config import OrchestratorConfig
from vocant.core.exceptions import ManifestError, OrchestrationCancelledError
from vocant.core.interfaces.http_client import HttpClientPort
from vocant.core.logging_config import configure_logging
from vocant.core.managers.batch_runner import BatchRunner
from vocant.core.managers.callback_receiver import CallbackReceiver
from vocant.core.managers.job_orchestrator import JobOrchestrator
from vocant.core.managers.remote_job_client import RemoteJobClient
from vocant.core.models.outcome import Outcome
from vocant.core.models.work_item import WorkItem
from vocant.core.settings import app_settings, logger

EXIT_OK = 0
EXIT_ABORTED = 2
EXIT_PARTIAL = 3
EXIT_MANIFEST = 4
EXIT_CANCELLED = 130


# main lives at the outermost layer (not in core):
# instantiates the concrete adapters, wires dependencies, starts the entry point.

def build_client(http_client: HttpClientPort, config: OrchestratorConfig) -> RemoteJobClient:
    return RemoteJobClient(
        http_client,
        api_key=app_settings.VOCANT_API_KEY.get_secret_value(),
        base_url=app_settings.api_base_url,
        config=config,
        retry_port=TenacityRetryAdapter.from_config(config),
    )


def serve(host: str, port: int) -> None:
    config = OrchestratorConfig.from_app_settings(app_settings)

    def callback_receiver_factory(client: HttpClientPort) -> CallbackReceiver:
        return CallbackReceiver(
            build_client(client, config),
            shared_secret=app_settings.VOCANT_API_KEY.get_secret_value(),
        )

    app = create_app(
        http_client=AioHttpClientAdapter(default_timeout=config.request_timeout),
        callback_receiver_factory=callback_receiver_factory,
        callback_path=app_settings.VOCANT_CALLBACK_PATH,
    )

    # Let uvicorn inherit existing logging (separate sinks & correlation ids)
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_config=None,
        log_level=str(app_settings.VOCANT_LOG_LEVEL).lower(),
    )


def install_shutdown_handlers(loop: asyncio.AbstractEventLoop, runner: BatchRunner) -> List[int]:
    """Route SIGINT/SIGTERM to `runner.shutdown()`; returns the signals installed."""
    pending: Set[asyncio.Future] = set()

    def request_shutdown(signame: str) -> None:
        logger.warning(f"[batch] {signame} received, cancelling in-flight item")
        future = asyncio.ensure_future(runner.shutdown())
        pending.add(future)
        future.add_done_callback(pending.discard)

    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, request_shutdown, sig.name)
        except (NotImplementedError, RuntimeError):
            # no signal support on this loop (e.g. Windows); Ctrl-C stays a hard stop
            continue
        installed.append(sig)
    return installed


async def run_batch(items: Sequence[WorkItem], config: OrchestratorConfig) -> List[Outcome]:
    async with AioHttpClientAdapter(default_timeout=config.request_timeout) as http_client:
        orchestrator = JobOrchestrator(build_client(http_client, config))
        runner = BatchRunner(orchestrator, continue_on_fail=config.continue_on_fail)
        loop = asyncio.get_running_loop()
        installed = install_shutdown_handlers(loop, runner)
        try:
            return await runner.run(items)
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)


def write_artifacts(outcomes: Sequence[Outcome], output_dir: str) -> List[str]:
    """Write artifacts into `output_dir`; a name already used in this run gets a suffix."""
    os.makedirs(output_dir, exist_ok=True)
    written: List[str] = []
    used: Set[str] = set()
    for outcome in outcomes:
        if outcome.artifact is None:
            continue
        file_name = os.path.basename(outcome.artifact.file_name)
        if file_name in used:
            stem, ext = os.path.splitext(file_name)
            file_name = f"{stem}_{outcome.job_id or outcome.index}{ext}"
            if file_name in used:
                file_name = f"{stem}_{outcome.index}{ext}"
        used.add(file_name)
        path = os.path.join(output_dir, file_name)
        with open(path, "wb") as f:
            f.write(outcome.artifact.data)
        written.append(path)
        logger.info(f"[batch] wrote artifact index={outcome.index} path={path}")
    return written


def report(outcomes: Sequence[Outcome], output_dir: str) -> None:
    write_artifacts(outcomes, output_dir)
    print(json.dumps([o.summary() for o in outcomes], indent=2))


def batch(manifest: str, output_dir: str, continue_on_fail: Optional[bool]) -> int:
    config = OrchestratorConfig.from_app_settings(app_settings)
    if continue_on_fail is not None:
        config = config.model_copy(update={"continue_on_fail": continue_on_fail})

    try:
        items = ManifestFileAdapter(manifest).load()
    except ManifestError as exc:
        print(f"Manifest error: {exc.message}", file=sys.stderr)
        return EXIT_MANIFEST

    try:
        outcomes = asyncio.run(run_batch(items, config))
    except OrchestrationCancelledError as exc:
        # outcomes finished before the shutdown are still delivered
        report(exc.completed, output_dir)
        print(json.dumps({"cancelled": True, "index": exc.item_index, "completed": len(exc.completed)}), file=sys.stderr)
        return EXIT_CANCELLED
    except Exception as exc:
        print(
            json.dumps({
                "aborted": True,
                "index": getattr(exc, "item_index", None),
                "kind": getattr(exc, "kind", "unexpected"),
                "error": str(exc),
            }),
            file=sys.stderr,
        )
        return EXIT_ABORTED

    report(outcomes, output_dir)
    return EXIT_OK if all(o.success for o in outcomes) else EXIT_PARTIAL


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vocant", description="Vocant transcription job orchestrator")
    sub = parser.add_subparsers(dest="command", required=True)

    serve_p = sub.add_parser("serve", help="Run the inbound callback receiver")
    serve_p.add_argument("--host", default=app_settings.VOCANT_SERVER_HOST)
    serve_p.add_argument("--port", type=int, default=app_settings.VOCANT_SERVER_PORT)

    batch_p = sub.add_parser("batch", help="Upload, poll and fetch the items of a YAML manifest")
    batch_p.add_argument("manifest")
    batch_p.add_argument("--output", default="transcripts")
    batch_p.add_argument(
        "--continue-on-fail",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Record per-item failures instead of aborting (default: VOCANT_CONTINUE_ON_FAIL)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # Central logging configuration before anything emits;
    # batch prints its JSON summary on stdout, so its logs all go to stderr
    configure_logging(
        app_settings.VOCANT_LOG_LEVEL,
        info_stream=sys.stderr if args.command == "batch" else None,
    )

    if args.command == "serve":
        app_settings.print_settings(logger)
        serve(args.host, args.port)
        return EXIT_OK
    return batch(args.manifest, args.output, args.continue_on_fail)


if __name__ == "__main__":
    sys.exit(main())
