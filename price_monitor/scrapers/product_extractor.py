# price_monitor/scrapers/product_extractor.py

"""Turn WooCommerce category markup into :class:`ProductRecord` objects."""

import json
import logging
from pathlib import Path
from typing import Any

from bs4 import BeautifulSoup, Tag

from price_monitor.config.settings import Settings
from price_monitor.models.errors import PriceParseError
from price_monitor.models.product import ProductRecord, SafeText
from price_monitor.parsers.price_text import parse_price_text

logger = logging.getLogger("price_monitor.extractor")


def load_selectors(
    theme: str = "woocommerce",
    path: Path | None = None,
) -> dict[str, str]:
    """Load CSS selectors for a storefront theme from selectors.json."""
    with open(path or Settings.SELECTORS_PATH, encoding="utf-8") as f:
        all_selectors: dict[str, Any] = json.load(f)
    result: dict[str, str] = all_selectors.get(theme, {})
    return result


class ProductExtractor:
    """Extracts product listings from a category page.

    The extractor never touches the network; it receives markup that the
    scraper has already fetched.
    """

    def __init__(self, selectors: dict[str, str] | None = None) -> None:
        self.selectors = selectors or load_selectors()

    def extract(
        self,
        markup: str | BeautifulSoup,
        category: str,
    ) -> list[ProductRecord]:
        """Return every well-formed listing in document order.

        Listings without a title or with an unparseable price are skipped.
        """
        soup = (
            markup
            if isinstance(markup, BeautifulSoup)
            else BeautifulSoup(markup, "lxml")
        )
        records: list[ProductRecord] = []
        elements = soup.select(self.selectors["product_link"])
        for element in elements:
            record = self._parse_element(element, category)
            if record is not None:
                records.append(record)

        skipped = len(elements) - len(records)
        logger.info(
            "[%s] Extracted %d products (%d skipped)",
            category,
            len(records),
            skipped,
        )
        return records

    def _parse_element(
        self, element: Tag, category: str,
    ) -> ProductRecord | None:
        """Parse a single product link into a record, or None to skip."""
        title_el = element.select_one(self.selectors["title"])
        title = title_el.get_text(strip=True) if title_el else ""
        if not title:
            logger.debug("[%s] Skipping listing without title", category)
            return None

        price_el = element.select_one(self.selectors["price"])
        price_text = price_el.get_text(" ", strip=True) if price_el else ""
        try:
            parsed = parse_price_text(price_text)
        except PriceParseError as exc:
            logger.debug(
                "[%s] Skipping '%s': %s", category, title, exc,
            )
            return None

        return ProductRecord(
            name=SafeText.escape(title),
            price=parsed.amount,
            unit=parsed.unit,
            category=category,
        )
