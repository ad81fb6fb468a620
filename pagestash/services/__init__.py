"""Business-logic services built on the provider interfaces."""

from pagestash.services.discovery_service import DiscoveryService
from pagestash.services.import_service import ImportService
from pagestash.services.item_service import ItemService
from pagestash.services.summary_service import SummaryService, parse_tags

__all__ = ["DiscoveryService", "ImportService", "ItemService", "SummaryService", "parse_tags"]
