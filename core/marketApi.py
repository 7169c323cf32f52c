"""Client for the public wholesale-market real-time auction price API.

The upstream service returns today's auction trades for every wholesale
market in the country, paged, in one of several JSON envelopes depending on
the provider. ``MarketApiClient.get_prices`` turns that into a flat list of
normalized price records for a single product (and optionally a single
region), sorted newest first.

Upstream trouble (timeouts, connection errors, bad status codes, bodies we
cannot parse, provider error codes) never escapes ``get_prices``: it is
logged and reported as "no data", an empty list.
"""
import json
import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from datetime import datetime, timedelta, timezone

import requests

from core.regions import market_in_region

logger = logging.getLogger(__name__)

MAX_PAGES = 5
ROWS_PER_PAGE = 500
DEFAULT_TIMEOUT = 30

KST = timezone(timedelta(hours=9))

OK_RESULT_CODES = ("", "0", "00", "000")
NO_DATA_MARKERS = ("no data", "NODATA", "데이터 없음", "조회된 데이터가 없습니다", "결과가 없습니다")

# Field aliases, highest priority first.
PRICE_FIELDS = ("scsbd_prc", "dpr1", "p_price", "price", "amt", "sbid_pric", "cost",
                "dpr2", "dpr3", "auction_price", "trade_price")
MARKET_FIELDS = ("marketname", "p_marketname", "marketName", "whsal_mrkt_nm", "whsalMrktNm",
                 "mrktNm", "countyname", "p_countyname")
PRODUCT_FIELDS = ("item_nm", "prdlst_nm", "productName", "corp_gds_item_nm", "p_itemname",
                  "p_productname", "productname", "prdlstNm")
GRADE_FIELDS = ("gds_sclsf_nm", "gds_mclsf_nm", "corp_gds_vrty_nm", "kindname", "p_grade",
                "grade", "rank", "stdPrdlstNm", "productrank", "quality")
UNIT_FIELDS = ("unit", "p_unitname", "unitname", "stdUnit", "stdQtt", "p_unit")
DATE_FIELDS = ("trd_clcln_ymd", "scsbd_dt", "lastest_day", "p_regday", "regday", "baseDate", "date")

DEFAULT_MARKET_NAME = "전국 평균"
DEFAULT_GRADE = "일반"
DEFAULT_UNIT = "1kg"
GRADE_RANK = {"상품": 1, "중품": 2, "하품": 3}


class MarketApiError(Exception):
    """The pricing API answered, but not with usable data."""


def _value(item, field):
    raw = item.get(field)
    if raw is None or raw == "":
        return ""
    return str(raw).strip()


def _first(item, fields, default=""):
    for field in fields:
        value = _value(item, field)
        if value:
            return value
    return default


def parse_price(value):
    """Leading integer of a price string such as ``"1,200"`` or ``"950.5"``."""
    if not value or value == "-":
        return 0
    match = re.match(r"\d+", value.replace(",", ""))
    return int(match.group()) if match else 0


def _dig(value, *keys):
    """``value[k1][k2]...``, or ``None`` as soon as a level is not a mapping."""
    for key in keys:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def _items_of(container):
    """Item list under ``items.item`` or a bare ``items`` list, else ``None``."""
    items = _dig(container, "items")
    if isinstance(items, list):
        return items
    return _dig(items, "item")


def _result_of(header):
    if not isinstance(header, dict):
        return "", ""
    return header.get("resultCode", ""), header.get("resultMsg", "")


def extract_items(payload):
    """Return ``(items, result_code, result_msg)`` from any known envelope.

    Raises ``MarketApiError`` when the items are neither a list nor a single
    record.
    """
    if not isinstance(payload, dict):
        return [], "", ""

    items, code, msg = None, "", ""
    response = payload.get("response")

    if _items_of(_dig(response, "body")) is not None:
        items = _items_of(_dig(response, "body"))
        code, msg = _result_of(_dig(response, "header"))
    elif _items_of(payload.get("body")) is not None:
        items = _items_of(payload.get("body"))
        code, msg = _result_of(payload.get("header"))
    elif _dig(payload, "data", "item") is not None:
        items = payload["data"]["item"]
        code, msg = _dig(payload, "data", "error_code") or "", _dig(payload, "data", "error_msg") or ""
    elif isinstance(payload.get("item"), list):
        items = payload["item"]
    else:
        # Header-only answers still carry the provider's result code.
        header = _dig(response, "header")
        code, msg = _result_of(header if isinstance(header, dict) else payload.get("header"))

    if items is None:
        items = []
    elif isinstance(items, dict):
        items = [items]
    elif not isinstance(items, list):
        raise MarketApiError(f"Unexpected item container {type(items).__name__}")
    return items, str(code or ""), str(msg or "")


def _grade_from_text(text):
    text = (text or "").lower()
    if not text:
        return ""
    if "특상" in text or "특등" in text:
        return "특상"
    if "상품" in text or text == "상" or "상등" in text:
        return "상품"
    if "중품" in text or text == "중" or "중등" in text:
        return "중품"
    if "하품" in text or text == "하" or "하등" in text:
        return "하품"
    return ""


def _parse_grade(item):
    grade = _first(item, GRADE_FIELDS)
    if grade and grade not in ("-", "null"):
        return grade

    grade = ""
    product_text = _first(item, ("corp_gds_item_nm", "productName", "item_name"))
    if "/" in product_text:
        grade = product_text.split("/", 1)[1].strip()
    if not grade:
        grade = _grade_from_text(_value(item, "kindname"))
    if not grade:
        grade = _grade_from_text(_first(item, ("gds_sclsf_nm", "gds_mclsf_nm")))
    return grade or DEFAULT_GRADE


def _parse_unit(item):
    unit = DEFAULT_UNIT
    kind_name = _value(item, "kindname")
    if kind_name:
        boxed = re.search(r"(\d+)kg\s*\((\d+)kg\)", kind_name)
        counted = re.search(r"(\d+)(포기|개|박스|망|봉)", kind_name)
        if boxed:
            unit = f"{boxed.group(2)}kg"
        elif counted:
            unit = f"{counted.group(1)}{counted.group(2)}"

    unit_name = _value(item, "unit_nm")
    if unit_name:
        unit_qty = _value(item, "unit_qty")
        if unit_qty and unit_qty not in ("1", "1.000"):
            return f"{unit_qty}{unit_name}"
        return f"1{unit_name}"

    return _first(item, UNIT_FIELDS, unit)


def _parse_date(item, today):
    raw = _first(item, DATE_FIELDS)
    if not raw or raw == "-":
        return today.isoformat()
    if "-" in raw and len(raw) >= 10:
        return raw[:10]
    if len(raw) == 8 and raw.isdigit():
        return f"{raw[:4]}-{raw[4:6]}-{raw[6:]}"
    if "/" in raw:
        month, _, day = raw.partition("/")
        if month.isdigit() and day.isdigit():
            return f"{today.year}-{month.zfill(2)}-{day.zfill(2)}"
    return today.isoformat()


def normalize_item(item, product_name, today):
    """Map one upstream trade onto a price record, or ``None`` if it has no price."""
    if not isinstance(item, dict):
        return None

    price = 0
    for field in PRICE_FIELDS:
        price = parse_price(_value(item, field))
        if price > 0:
            break
    if price <= 0:
        return None

    return {
        "market_name": _first(item, MARKET_FIELDS, DEFAULT_MARKET_NAME),
        "product_name": _first(item, PRODUCT_FIELDS, product_name),
        "grade": _parse_grade(item),
        "price": price,
        "unit": _parse_unit(item),
        "date": _parse_date(item, today),
    }


def sort_prices(prices):
    """Newest first, then market name, grade rank and highest price."""
    ordered = sorted(prices, key=lambda p: -p["price"])
    ordered.sort(key=lambda p: GRADE_RANK.get(p["grade"], 4))
    ordered.sort(key=lambda p: p["market_name"])
    ordered.sort(key=lambda p: p["date"], reverse=True)
    return ordered


def calculate_average_price(prices):
    if not prices:
        return 0
    return sum(p["price"] for p in prices) / len(prices)


class MarketApiClient:

    def __init__(self, api_key, base_url, timeout=DEFAULT_TIMEOUT, session=None):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests

    def _download(self, params, timeout, opened):
        response = self.session.get(
            self.base_url,
            params=params,
            headers={"Accept": "application/json, application/xml, text/xml, */*"},
            timeout=timeout,
            stream=True,
        )
        opened.append(response)
        return response, response.content

    def _fetch_page(self, page_no, trade_date, deadline):
        params = {
            "serviceKey": self.api_key,
            "pageNo": str(page_no),
            "numOfRows": str(ROWS_PER_PAGE),
            "dataType": "JSON",
            "trgDate": trade_date,
        }
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise requests.Timeout(f"Pricing API exceeded {self.timeout}s")

        # The deadline bounds the whole download, not each socket read.
        opened = []
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            response, content = executor.submit(self._download, params, remaining, opened).result(timeout=remaining)
        except FutureTimeout:
            for response in opened:
                response.close()
            raise requests.Timeout(f"Pricing API exceeded {self.timeout}s") from None
        finally:
            executor.shutdown(wait=False)

        if response.status_code != 200:
            raise MarketApiError(f"Pricing API returned HTTP {response.status_code}")

        try:
            payload = json.loads(content)
        except ValueError as e:
            content_type = response.headers.get("Content-Type", "")
            raise MarketApiError(f"Unparseable pricing API response ({content_type or 'unknown type'})") from e

        items, code, msg = extract_items(payload)
        if code not in OK_RESULT_CODES:
            if any(marker in msg for marker in NO_DATA_MARKERS):
                return []
            raise MarketApiError(f"Pricing API error {code}: {msg or 'unknown'}")
        return items

    def fetch_items(self, trade_date):
        """All raw trades for ``trade_date`` (``YYYYMMDD``) across pages.

        Raises on a first-page failure; a later failure keeps what was
        already collected. ``requests.Timeout`` always propagates.
        """
        deadline = time.monotonic() + self.timeout
        collected = []
        for page_no in range(1, MAX_PAGES + 1):
            try:
                items = self._fetch_page(page_no, trade_date, deadline)
            except requests.Timeout:
                raise
            except (requests.RequestException, MarketApiError):
                if page_no == 1:
                    raise
                logger.warning("Pricing API page %s failed, keeping %s rows", page_no, len(collected), exc_info=True)
                break

            if not items:
                break
            collected.extend(items)
            if len(items) < ROWS_PER_PAGE:
                break
        return collected

    def get_prices(self, product_name, region=None, now=None):
        """Normalized, sorted price records for ``product_name``; ``[]`` on any upstream failure."""
        if not self.api_key:
            logger.error("MARKET_API_KEY is not configured; returning no market prices")
            return []

        now = now or datetime.now(KST)
        today = now.date()

        try:
            items = self.fetch_items(today.strftime("%Y%m%d"))
        except requests.Timeout:
            logger.warning("Pricing API timed out after %ss for %r", self.timeout, product_name)
            return []
        except (requests.RequestException, MarketApiError) as e:
            logger.error("Pricing API call failed for %r: %s", product_name, e)
            return []

        wanted = product_name.strip().lower()
        prices = []
        for item in items:
            record = normalize_item(item, product_name, today)
            if record is None:
                continue
            if wanted not in record["product_name"].lower():
                continue
            if region and not market_in_region(record["market_name"], region):
                continue
            prices.append(record)

        logger.info("Pricing API: %s of %s trades matched %r (region=%s)",
                    len(prices), len(items), product_name, region or "-")
        return sort_prices(prices)


def client_from_config(config):
    return MarketApiClient(
        api_key=config.get("MARKET_API_KEY"),
        base_url=config.get("MARKET_API_URL"),
        timeout=config.get("MARKET_API_TIMEOUT", DEFAULT_TIMEOUT),
    )
