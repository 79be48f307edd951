"""Process-wide Temporal client."""

from loguru import logger
from temporalio.client import Client, TLSConfig
from temporalio.contrib.pydantic import pydantic_data_converter

from src.product_service.runtime.context import get_config


class TemporalClientService:
    """Shared, lazily connected Temporal client.

    Both the API process (which enqueues repair tasks) and the worker process
    obtain their client here so that every connection uses the pydantic data
    converter.

    Example:
        client = await temporal_service.get_client()
        handle = await TaskDispatchWorkflow.start_workflow(
            client, input=envelope, id="product:updateThumbnail-123"
        )
    """

    def __init__(self) -> None:
        # Connected on first use
        self._client: Client | None = None
        self._config = get_config().temporal
        self._max_retry_attempts = 3

    @property
    def is_enabled(self) -> bool:
        return self._config.enabled

    @property
    def namespace(self) -> str:
        return self._config.namespace

    @property
    def task_queue(self) -> str:
        return self._config.task_queue

    @property
    def url(self) -> str:
        return self._config.url

    async def get_client(self) -> Client:
        """Get or create the Temporal client connection.

        Raises:
            RuntimeError: If Temporal is disabled in configuration
            Exception: If connection fails after retries
        """
        if not self._config.enabled:
            raise RuntimeError("Temporal service is disabled in configuration")

        if self._client is None:
            self._client = await self._connect()

        return self._client

    async def _connect(self) -> Client:
        cfg = self._config
        error: Exception | None = None
        for attempt in range(1, self._max_retry_attempts + 1):
            logger.info("Connecting to Temporal", url=cfg.url, namespace=cfg.namespace, attempt=attempt)
            try:
                client = await Client.connect(
                    cfg.url,
                    namespace=cfg.namespace,
                    tls=TLSConfig() if cfg.tls else False,
                    data_converter=pydantic_data_converter,
                )
            except Exception as e:
                error = e
                logger.warning(
                    "Temporal connection attempt failed",
                    error_type=type(e).__name__,
                    error_message=str(e),
                    attempt=attempt,
                    max_attempts=self._max_retry_attempts,
                )
                continue
            logger.info("Connected to Temporal", namespace=cfg.namespace, attempts=attempt)
            return client

        logger.error("Giving up on Temporal", url=cfg.url, attempts=self._max_retry_attempts)
        raise error or RuntimeError("Failed to connect to Temporal")

    async def health_check(self) -> bool:
        """Return True if a client connection can be obtained."""
        if not self._config.enabled:
            return False

        try:
            client = await self.get_client()
            _ = client.workflow_service
            return True
        except Exception as e:
            logger.error(
                "Temporal health check failed",
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return False

    async def close(self) -> None:
        """Release the client reference.

        The SDK client has no close(); its connection is dropped with the object.
        """
        if self._client is not None:
            logger.info("Releasing Temporal client connection")
            self._client = None
