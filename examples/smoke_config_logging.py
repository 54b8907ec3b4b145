from __future__ import annotations

import logging
import sys

from layered_options import ConfigLoadRequest, LayeredConfigLoader, LoggingSettings, bind_model
from layered_options.logging import init_logging


def main() -> None:
    loaded = LayeredConfigLoader().load(ConfigLoadRequest(base_dir="examples", args=sys.argv[1:]))
    init_logging(bind_model(loaded.view, "Logging", LoggingSettings))

    logger = logging.getLogger("smoke")
    logger.warning("Config loaded environment=%s keys=%s", loaded.environment, len(loaded.view))
    logger.info("Logging level=%s", logging.getLevelName(logging.getLogger().level))
    print(loaded.view.dump_view())


if __name__ == "__main__":
    main()
