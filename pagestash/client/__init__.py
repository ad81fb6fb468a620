"""Client for consuming a remote bulk import stream."""

from pagestash.client.bulk_client import BulkImportClient, collect_summary

__all__ = ["BulkImportClient", "collect_summary"]
