"""Withdrawal of every remaining mDNS record at process exit."""

from .advertiser import AdvertiseError
from .logging_config import get_logger, log_function_entry, log_function_exit
from .reconciler import AdvertiserProtocol
from .store import RecordStore

logger = get_logger(__name__)


class ShutdownCoordinator:
    """Unregisters all records left in the store.

    Must only run once event processing has stopped, so that it is the
    sole writer of the store.
    """

    def __init__(self, store: RecordStore, advertiser: AdvertiserProtocol) -> None:
        self.store = store
        self.advertiser = advertiser

    def unregister_all(self) -> int:
        """Withdraw every registration in the store.

        Returns:
            The number of unregister calls made.
        """
        log_function_entry(logger, "unregister_all", records=len(self.store))
        calls = 0
        for local in self.store.keys():
            registration = self.store.remove(local)
            if registration is None:
                continue
            logger.info("Unregistering hostname", hostname=local.hostname, tls=local.tls)
            calls += 1
            try:
                self.advertiser.unregister(registration)
            except AdvertiseError as e:
                logger.error("Failed to unregister hostname", hostname=local.hostname, error=str(e))
        log_function_exit(logger, "unregister_all", unregistered=calls)
        return calls
