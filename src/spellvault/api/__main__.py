# src/spellvault/api/__main__.py
from __future__ import annotations

import uvicorn

from spellvault.env import load_dotenv_if_present


def main() -> None:
    # Load .env early so SPELLVAULT_* vars exist before anything reads them.
    load_dotenv_if_present()

    # Import after dotenv load (prevents "config read before env" surprises)
    from spellvault.api.app import create_app
    from spellvault.api.structured_logging import configure_structured_logging
    from spellvault.runtime.config import load_client_config

    cfg = load_client_config()
    configure_structured_logging(cfg.log_level)

    uvicorn.run(create_app(), host=cfg.api_host, port=cfg.api_port, log_level="info")


if __name__ == "__main__":
    main()
