"""Stand-ins for outbound HTTP, served through a patched ``requests.get``/``requests.post``."""
import json


class FakeResponse:
    def __init__(self, payload=None, status_code=200, content_type="application/json", reason=""):
        self.payload = payload
        self.status_code = status_code
        self.reason = reason
        self.headers = {"Content-Type": content_type}
        self.closed = False
        if isinstance(payload, Exception):
            self.content = b"<html>Service unavailable</html>"
        else:
            self.content = json.dumps(payload).encode("utf-8")
        self.text = self.content.decode("utf-8")

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload

    def close(self):
        self.closed = True


class FakeMarketApi:
    """Stands in for ``requests.get`` against the pricing API.

    ``pages`` is a list of responses (or exceptions to raise), served in
    order; requests past the end get an empty page.
    """

    def __init__(self):
        self.pages = []
        self.calls = []

    def serve(self, *pages):
        self.pages = list(pages)

    def __call__(self, url, params=None, headers=None, timeout=None, stream=False):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        index = len(self.calls) - 1
        page = self.pages[index] if index < len(self.pages) else trades_page([])
        if isinstance(page, Exception):
            raise page
        return page


def trades_page(items, result_code="00", result_msg="NORMAL SERVICE."):
    return FakeResponse({
        "response": {
            "header": {"resultCode": result_code, "resultMsg": result_msg},
            "body": {"items": {"item": items}},
        }
    })


def trade(product, price, market="서울가락도매시장", grade="상품", date="20251203"):
    return {
        "corp_gds_item_nm": product,
        "scsbd_prc": str(price),
        "whsal_mrkt_nm": market,
        "gds_sclsf_nm": grade,
        "trd_clcln_ymd": date,
    }




class FakeChatWorkflow:
    """Stands in for ``requests.post`` against the chat workflow webhook."""

    def __init__(self, reply=None):
        self.reply = FakeResponse({"response": "안녕하세요"}) if reply is None else reply
        self.calls = []

    def __call__(self, url, json=None, timeout=None, **kwargs):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply
