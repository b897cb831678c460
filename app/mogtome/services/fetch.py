"""Fetch the free company roster from the Lodestone."""
import logging
import re
from typing import List, Optional, Tuple
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from ..errors import SourceFetchError
from ..models.member import RosterEntry

log = logging.getLogger("mogtome.fetch")

DEFAULT_TIMEOUT = 30
MAX_PAGES = 50
CHARACTER_HREF = re.compile(r"/lodestone/character/(\d+)/?")


def _img_src(node) -> Optional[str]:
    img = node.find("img") if node else None
    src = img.get("src") if img else None
    return src or None


def parse_member_entry(li) -> Optional[RosterEntry]:
    link = li.find("a", href=CHARACTER_HREF)
    if not link:
        return None
    match = CHARACTER_HREF.search(link["href"])
    name_node = li.find(class_="entry__name")
    name = name_node.get_text(strip=True) if name_node else ""
    if not match or not name:
        return None

    rank_node = li.find(class_="entry__freecompany__info")
    rank_item = rank_node.find("li") if rank_node else None
    rank_span = rank_item.find("span") if rank_item else None

    return RosterEntry(
        character_id=match.group(1),
        name=name,
        rank=rank_span.get_text(strip=True) if rank_span else "",
        rank_icon=_img_src(rank_item),
        avatar=_img_src(li.find(class_="entry__chara__face")),
    )


def parse_member_page(html: str, page_url: str = "") -> Tuple[List[RosterEntry], Optional[str]]:
    """Return the entries on one member page and the next page URL, if any."""
    soup = BeautifulSoup(html, "html.parser")
    entries = []
    for li in soup.select("li.entry"):
        entry = parse_member_entry(li)
        if entry is not None:
            entries.append(entry)

    next_url = None
    pager = soup.find("a", class_="btn__pager__next")
    if pager and "btn__pager__no" not in (pager.get("class") or []):
        href = pager.get("href")
        if href and href != "javascript:void(0);":
            next_url = urljoin(page_url, href)
    return entries, next_url


class LodestoneSource:
    def __init__(
        self,
        free_company_id: str,
        host: str = "na.finalfantasyxiv.com",
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        if not free_company_id:
            raise ValueError("free_company_id is required")
        self.free_company_id = free_company_id
        self.base_url = f"https://{host}/lodestone/freecompany/{free_company_id}/member/"
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_page(self, url: str) -> str:
        log.info("Fetching %s", url)
        resp = self.session.get(url, timeout=self.timeout)
        resp.raise_for_status()
        return resp.text

    def fetch_roster(self) -> List[RosterEntry]:
        roster: List[RosterEntry] = []
        seen = set()
        url: Optional[str] = self.base_url
        try:
            while url and url not in seen:
                if len(seen) >= MAX_PAGES:
                    raise SourceFetchError(f"Roster paging exceeded {MAX_PAGES} pages")
                seen.add(url)
                entries, url = parse_member_page(self.fetch_page(url), url)
                roster.extend(entries)
        except requests.RequestException as exc:
            raise SourceFetchError(f"Lodestone request failed: {exc}") from exc
        log.info("Fetched %d members across %d pages", len(roster), len(seen))
        return roster
