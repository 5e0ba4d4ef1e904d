"""DingTalk robot webhook client — signed markdown messages."""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import time
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

DING_API_URL = "https://oapi.dingtalk.com/robot/send"
MSG_TYPE = "markdown"


class DeliveryError(RuntimeError):
    """The webhook did not confirm delivery of a message."""


@dataclass(frozen=True)
class Sign:
    """Query parameters authenticating one webhook call."""

    access_token: str
    timestamp: int
    sign: str

    def as_params(self) -> dict[str, str]:
        return {
            "access_token": self.access_token,
            "timestamp": str(self.timestamp),
            "sign": self.sign,
        }


def calc_sign(secret: str, timestamp: int) -> str:
    """base64(HMAC-SHA256(secret, "{timestamp}\\n{secret}"))."""
    string_to_sign = f"{timestamp}\n{secret}"
    digest = hmac.new(
        secret.encode("utf-8"), string_to_sign.encode("utf-8"), hashlib.sha256
    ).digest()
    return base64.b64encode(digest).decode("ascii")


class DingBot:
    """Sends markdown messages to one DingTalk custom robot."""

    def __init__(
        self,
        access_token: str,
        secret_token: str,
        *,
        api_url: str = DING_API_URL,
        timeout: float = 30,
    ) -> None:
        self.access_token = access_token
        self.secret_token = secret_token
        self.api_url = api_url
        self.timeout = timeout

    def generate_sign(self, timestamp: int | None = None) -> Sign:
        if timestamp is None:
            timestamp = int(time.time() * 1000)
        return Sign(
            access_token=self.access_token,
            timestamp=timestamp,
            sign=calc_sign(self.secret_token, timestamp),
        )

    def push_markdown(self, title: str, text: str) -> None:
        """Deliver one markdown message. Raises DeliveryError unless errcode is 0."""
        # DingTalk collapses blank lines; a non-breaking space keeps paragraphs apart.
        text = text.replace("\n\n", "\n\n&nbsp;\n")
        payload = {
            "msgtype": MSG_TYPE,
            "markdown": {"title": title, "text": text},
        }
        try:
            response = httpx.post(
                self.api_url,
                params=self.generate_sign().as_params(),
                json=payload,
                headers={"Accept-Charset": "utf8"},
                timeout=self.timeout,
            )
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise DeliveryError(f"send ding message failed: {exc}") from exc

        errcode = data.get("errcode", -1)
        if errcode != 0:
            logger.warning(
                "DingTalk push failed: errcode=%s errmsg=%s", errcode, data.get("errmsg")
            )
            raise DeliveryError(f"ding push returned errcode {errcode}: {data.get('errmsg')}")
        logger.info("DingTalk message sent: %s", title)
