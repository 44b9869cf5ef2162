import os
import re
import json
from datetime import datetime, timezone
from typing import List, Dict, Optional
from urllib.parse import urlparse
import logging
import requests
from bs4 import BeautifulSoup
from duckduckgo_search import DDGS

RAW_INPUTS_DIR = os.getenv("TENANTCHECK_RAW_INPUTS_DIR", "data/raw_inputs")

# ---------- ENV KNOBS ----------
REQUIRE_NAME_IN_BODY = os.getenv("TENANTCHECK_REQUIRE_NAME_IN_BODY", "1") not in ("0", "false", "False")
MAX_RESULTS_DEFAULT = int(os.getenv("TENANTCHECK_MAX_RESULTS", "5"))
QUERY_LANG = os.getenv("TENANTCHECK_QUERY_LANG", "wt-wt")  # ddg region hint (not strict)
SAFESEARCH = os.getenv("TENANTCHECK_SAFESEARCH", "moderate")  # off|moderate|strict
BODY_LINE_LIMIT = int(os.getenv("TENANTCHECK_BODY_LINE_LIMIT", "200"))
FETCH_TIMEOUT = int(os.getenv("TENANTCHECK_FETCH_TIMEOUT", "18"))

# People-search aggregators mostly return paywalls or other people with the same name
SKIP_DOMAINS = ["spokeo.com", "whitepages.com", "beenverified.com", "truepeoplesearch.com", "mylife.com"]


# ---------- BASIC HELPERS ----------
def _contains_word(text: str, needle: str) -> bool:
    if not text or not needle:
        return False
    return re.search(r"\b" + re.escape(needle.lower()) + r"\b", text.lower()) is not None


def _domain_of(url: str) -> str:
    try:
        return urlparse(url).netloc.lower()
    except ValueError:
        return ""


def build_queries(full_name: str, city: str = "", region: str = "",
                  previous_location: str = "", profile_hint: str = "") -> List[str]:
    """Query tiers, most specific first. No literal 'AND': DDG treats it as a word."""
    name_q = f"\"{full_name.strip()}\""
    place = ", ".join(p for p in [city, region] if p)
    queries = []
    if place:
        queries.append(f"{name_q} \"{place}\"")
    if previous_location:
        queries.append(f"{name_q} \"{previous_location}\"")
    if profile_hint:
        queries.append(f"{name_q} {profile_hint}")
    queries.append(f"{name_q} (court OR tribunal OR eviction OR news)")
    queries.append(f"{name_q} (linkedin OR facebook OR instagram OR twitter)")
    return queries


# ---------- FETCH ----------
def fetch_and_clean_content(url: str) -> str:
    try:
        headers = {
            "User-Agent": "Mozilla/5.0 (compatible; TenantCheckBot/1.0; +https://example.org/bot)",
            "Accept-Language": "en;q=0.9",
        }
        resp = requests.get(url, timeout=FETCH_TIMEOUT, headers=headers)
        resp.raise_for_status()
        soup = BeautifulSoup(resp.text, "html.parser")

        # keep relevant meta
        metas = []
        for k in ["og:title", "og:description", "description"]:
            m = soup.find("meta", attrs={"name": k}) or soup.find("meta", property=k)
            if m and m.get("content"):
                metas.append(m.get("content"))
        title_tag = soup.find("title")
        if title_tag and title_tag.text:
            metas.insert(0, title_tag.text.strip())

        for tag in soup(["script", "style", "noscript"]):
            tag.decompose()

        text = soup.get_text(separator="\n")
        lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
        body = "\n".join(lines[:BODY_LINE_LIMIT])
        if metas:
            body = "\n".join(metas) + "\n\n" + body
        return body
    except requests.RequestException as e:
        return f"[Error fetching {url}]: {e}"


# ---------- MAIN ----------
def search_person_mentions(first_name: str, last_name: str, city: str = "", region: str = "",
                           previous_location: str = "", profile_hint: str = "",
                           max_results: int = MAX_RESULTS_DEFAULT, save_to_disk: bool = False) -> List[Dict[str, str]]:
    """
    Web excerpts mentioning the prospect. Hits whose title/snippet/url do not
    mention the last name are dropped before fetching; fetched pages whose
    body and title do not mention it are dropped after.
    """
    full_name = f"{first_name} {last_name}".strip()
    queries = build_queries(full_name, city, region, previous_location, profile_hint)
    logging.info(f"[web_scraper] {len(queries)} queries for {full_name!r}")

    results: List[Dict[str, str]] = []
    seen = set()

    with DDGS() as ddgs:
        for qi, q in enumerate(queries, start=1):
            if len(results) >= max_results:
                break
            try:
                # over-fetch to allow filtering
                hits = ddgs.text(q, region=QUERY_LANG, safesearch=SAFESEARCH, max_results=max(10, max_results * 3))
            except Exception as e:
                logging.warning(f"[web_scraper] DDG query failed (tier {qi}): {e}")
                continue

            tier_kept = 0
            for r in hits or []:
                url = r.get("href") or r.get("url") or r.get("link")
                title = (r.get("title") or "").strip()
                snippet = (r.get("body") or r.get("snippet") or "").strip()
                if not url:
                    continue
                nurl = url.split("#")[0]
                if nurl in seen:
                    continue
                if any(_domain_of(url).endswith(d) for d in SKIP_DOMAINS):
                    continue

                # ---------- PREFILTER ----------
                if not _contains_word(f"{title} {snippet} {url}", last_name):
                    continue

                # ---------- FETCH BODY ----------
                body = fetch_and_clean_content(url)

                # ---------- POSTFILTER ----------
                if REQUIRE_NAME_IN_BODY and not (_contains_word(body, last_name) or _contains_word(title, last_name)):
                    continue

                results.append({
                    "title": title,
                    "url": url,
                    "snippet": snippet,
                    "body": body,
                    "date": r.get("date") or datetime.now(timezone.utc).isoformat(),
                })
                seen.add(nurl)
                tier_kept += 1
                if len(results) >= max_results:
                    break

            logging.info(f"[web_scraper] tier {qi}: kept={tier_kept}, total={len(results)}")

    if save_to_disk:
        os.makedirs(RAW_INPUTS_DIR, exist_ok=True)
        filepath = os.path.join(RAW_INPUTS_DIR, generate_filename(full_name, city))
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(results, f, indent=2, ensure_ascii=False)
        logging.info(f"[web_scraper] saved {len(results)} items to {filepath}")

    if not results:
        logging.info(f"[web_scraper] no results kept for {full_name!r}")
    return results


def generate_filename(full_name: str, city: Optional[str]) -> str:
    name_slug = re.sub(r"[^a-zA-Z0-9]", "_", (full_name or "").lower())
    city_slug = re.sub(r"[^a-zA-Z0-9]", "_", (city or "unknown").lower())
    ts = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    return f"{name_slug}_{city_slug}_{ts}.json"
