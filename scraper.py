"""
Opportunity listing scraper.

Fetches the listing page, extracts one record per listing tile and upserts it
keyed on title. Run it once per invocation; scheduling is left to cron:

    0 */12 * * * cd /srv/nest-api && python scraper.py
"""

import re
import sys
from typing import Any, Dict, Iterable, List, Optional

import requests
from bs4 import BeautifulSoup
from pydantic import ValidationError

import database
import settings
from logging_config import get_logger, setup_logging
from schemas import Opportunity
from store import Store

logger = get_logger(__name__)

TILE_SELECTOR = "app-competition-listing, app-featured-opportunity-tile"
_NUMBER = re.compile(r"(\d+)")


def _text(node) -> Optional[str]:
    if node is None:
        return None
    return node.get_text(strip=True) or None


def _first_int(text: Optional[str]) -> Optional[int]:
    match = _NUMBER.search((text or "").replace(",", ""))
    return int(match.group(1)) if match else None


def parse_opportunities(html: str) -> List[Dict[str, Any]]:
    records = []
    soup = BeautifulSoup(html, "html.parser")
    for tile in soup.select(TILE_SELECTOR):
        content = tile.select_one(".content")
        if content is None:
            continue
        image = tile.select_one(".img img")
        records.append({
            "title": _text(content.select_one(".opp-title h2.double-wrap")),
            "organizer": _text(content.select_one("p")),
            "type": _text(content.select_one(".tag-container .un_tag .tag-text")),
            "registered": _first_int(_text(tile.select_one(".other_fields .seperate_box:nth-child(1)"))),
            "days_left": _first_int(_text(tile.select_one(".other_fields .seperate_box:nth-child(2)"))),
            "skills": [s for s in (_text(c) for c in tile.select(".skills .skill_list .chip_text")) if s],
            "image": image.get("src") if image is not None else None,
        })
    return records


def upsert_opportunities(store: Store, records: Iterable[Dict[str, Any]]) -> int:
    """Upsert each record on its title. Records without a valid title are skipped."""
    count = 0
    for record in records:
        if not record.get("title"):
            logger.warning("opportunity_skipped", reason="missing title", organizer=record.get("organizer"))
            continue
        try:
            listing = Opportunity.model_validate(record)
        except ValidationError as e:
            logger.warning("opportunity_skipped", title=record.get("title"), reason=str(e))
            continue
        doc = store.upsert_opportunity(listing)
        logger.debug("opportunity_upserted", title=listing.title, id=doc.get("id") if doc else None)
        count += 1
    return count


def fetch_listing_page(url: str = settings.UNSTOP_URL, session: Optional[requests.Session] = None) -> str:
    http = session or requests
    response = http.get(url, timeout=settings.HTTP_TIMEOUT, headers={"User-Agent": "nest-api-scraper/1.0"})
    response.raise_for_status()
    return response.text


def run_once(store: Store, url: str = settings.UNSTOP_URL, session: Optional[requests.Session] = None) -> int:
    logger.info("scrape_started", url=url)
    records = parse_opportunities(fetch_listing_page(url, session))
    count = upsert_opportunities(store, records)
    logger.info("scrape_finished", scraped=len(records), upserted=count)
    return count


def main() -> int:
    setup_logging()
    if database.db is None:
        logger.error("scrape_aborted", reason="DATABASE_URL / DATABASE_NAME not configured")
        return 1
    store = Store(database.db)
    store.ensure_indexes()
    try:
        run_once(store)
    except requests.RequestException as e:
        logger.error("scrape_failed", error=str(e))
        return 1
    finally:
        database.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
