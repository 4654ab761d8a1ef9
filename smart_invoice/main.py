"""Entry point for the SmartInvoice API server."""

from pathlib import Path

import uvicorn

from smart_invoice.api.app import ServiceState, app, reset_state
from smart_invoice.utils.config import load_config
from smart_invoice.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def main(host: str = "0.0.0.0", port: int = 8000, config_path: Path | None = None) -> None:
    """Load settings and serve the API with uvicorn.

    Args:
        host: Bind address.
        port: TCP port.
        config_path: Optional YAML file; defaults to configs/config.yaml.
    """
    config = load_config(config_path)
    setup_logging(config.log_level)
    reset_state(ServiceState(config=config))
    logger.info("Serving SmartInvoice on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
