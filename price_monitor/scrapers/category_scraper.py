# price_monitor/scrapers/category_scraper.py

"""Scraper for the vendor's WooCommerce category listings."""

import time

from price_monitor.models.errors import FetchError
from price_monitor.models.product import ProductRecord
from price_monitor.scrapers.base_scraper import BaseScraper
from price_monitor.scrapers.product_extractor import ProductExtractor


class CategoryScraper(BaseScraper):
    """Fetches one category page and extracts its listings.

    A failed fetch yields an empty list so that the remaining
    categories of a cycle are still processed.
    """

    def __init__(self, extractor: ProductExtractor | None = None) -> None:
        super().__init__("category")
        self.extractor = extractor or ProductExtractor()

    def fetch_category(
        self, category: str, url: str,
    ) -> list[ProductRecord]:
        """Download *url* and return the listings found for *category*."""
        time.sleep(self._current_delay)
        try:
            soup = self.get_page(url)
        except FetchError as exc:
            self.logger.error(
                "[%s] Fetch failed: %s", category, exc,
            )
            return []
        return self.extractor.extract(soup, category)
