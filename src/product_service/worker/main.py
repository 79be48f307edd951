# worker/main.py
"""Worker process: Temporal workers for durable tasks plus the storage event consumer."""

from __future__ import annotations

import asyncio
import signal

import typer
from loguru import logger

from src.product_service.api.utils.app_startup import configure_logging
from src.product_service.core.services import (
    DbSessionService,
    RedisService,
    SearchProjection,
    TemporalClientService,
    TemporalTaskQueue,
    ThumbnailRepairConsumer,
)
from src.product_service.core.services.events.event_stream import RedisEventStream
from src.product_service.runtime.config.config_data import ConfigData
from src.product_service.runtime.context import get_config
from src.product_service.runtime.wiring import build_product_store
from src.product_service.worker.dependencies import WorkerDependencies, set_dependencies
from src.product_service.worker.manager import TemporalWorkerManager

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for s in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(s, stop_event.set)
        except NotImplementedError:
            # Windows / non-main thread
            pass


def _report_consumer_exit(task: asyncio.Task) -> None:
    if task.cancelled():
        logger.warning("Event consumer cancelled")
    elif (error := task.exception()) is not None:
        logger.opt(exception=error).error("Event consumer exited with an error")


async def _run(
    config: ConfigData,
    manager: TemporalWorkerManager,
    queues: list[str],
    drain_timeout: float,
) -> int:
    database_service = DbSessionService()
    redis_service = RedisService()
    search = SearchProjection()
    temporal_service = TemporalClientService()

    store = build_product_store(database_service, search, redis_service.get_client())
    set_dependencies(WorkerDependencies(store=store))

    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)

    consumer_task: asyncio.Task | None = None
    try:
        client = await temporal_service.get_client()

        redis_client = redis_service.get_client()
        if config.events.enabled and redis_client is not None:
            consumer = ThumbnailRepairConsumer(
                RedisEventStream(redis_client, config.events),
                TemporalTaskQueue(
                    temporal_service,
                    timeout_s=config.temporal.activities.start_to_close_timeout_s,
                ),
                config.events,
                config.product,
            )
            consumer_task = asyncio.create_task(
                consumer.run(stop_event), name="events:consumer"
            )
            consumer_task.add_done_callback(_report_consumer_exit)
        elif config.events.enabled:
            logger.warning("Event consumer disabled: Redis is not available")

        await manager.run_workers(
            client, queues, stop_event=stop_event, drain_timeout=drain_timeout
        )
        return 0
    except Exception:
        logger.exception("Worker crashed")
        return 1
    finally:
        stop_event.set()
        if consumer_task is not None:
            await asyncio.gather(consumer_task, return_exceptions=True)
        await store.drain()
        await search.close()
        await redis_service.close()
        await temporal_service.close()
        database_service.engine.dispose()
        logger.info("Worker stopped")


@app.command(name="serve")
def serve(
    queue: list[str] | None = typer.Option(
        None,
        "--queue",
        "-q",
        help="Task queue to poll (repeatable). If omitted, polls ALL discovered queues.",
    ),
    drain_timeout: float | None = typer.Option(
        None,
        "--drain-timeout",
        help="Seconds to wait for graceful drain on shutdown (default from config).",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        case_sensitive=False,
        help="Logging level (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL).",
    ),
):
    """
    Start the worker process.
    """
    configure_logging(level=log_level)

    config = get_config()
    if not config.temporal.enabled or not config.temporal.worker.enabled:
        logger.error("Temporal worker is disabled by configuration.")
        raise typer.Exit(code=2)

    # Queues come from the registered handlers
    manager = TemporalWorkerManager()
    discovered = sorted(manager.pools.keys())
    if not discovered:
        logger.error("No queues discovered. Define @workflow_defn/@activity_defn handlers.")
        raise typer.Exit(code=2)

    if queue:
        unknown = [q for q in queue if q not in discovered]
        if unknown:
            logger.error(
                "Unknown queue(s): {}. Known: {}", ", ".join(unknown), ", ".join(discovered)
            )
            raise typer.Exit(code=2)
        queues = queue
    else:
        queues = discovered

    logger.info(
        "Connecting to Temporal",
        url=config.temporal.url,
        namespace=config.temporal.namespace,
        tls=config.temporal.tls,
        queues=queues,
    )

    timeout = drain_timeout if drain_timeout is not None else config.temporal.worker.drain_timeout_s
    raise typer.Exit(code=asyncio.run(_run(config, manager, queues, timeout)))


def main():
    app()


if __name__ == "__main__":
    main()
