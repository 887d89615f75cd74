# main.py
# Punto de entrada: login -> carga inicial -> polling incremental de la bandeja
from __future__ import annotations
import logging
import time
from config.settings import Settings
from interface_adapters.controllers.polling_controller import PollingController

settings = Settings()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def main() -> None:
    controller = PollingController(settings=settings)

    logger.info("=== Mailbox ===")
    controller.on_navigated_to()
    sync = controller.sync
    logger.info("Cuenta=%s correos=%d sin leer=%d", sync.account_name, len(sync.cache), sync.cache.number_unread)
    for ev in sync.events:
        logger.info("Evento: %s (%s → %s %s)", ev.subject, ev.start, ev.end, ev.time_zone)

    while True:
        time.sleep(settings.POLL_INTERVAL)
        try:
            if controller.run_once():
                head = sync.cache[0]
                logger.info("Último: %s — %s (sin leer=%d)", head.sender, head.subject, sync.cache.number_unread)
        except Exception:
            logger.exception("Error en ciclo de polling")


if __name__ == "__main__":
    main()
