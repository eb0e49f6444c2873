"""TXT lookups over DNS-over-HTTPS (JSON API) for custom domain verification."""

from typing import Protocol

import httpx

TXT_RECORD_TYPE = 16


class DnsLookupError(Exception):
    pass


class TxtResolver(Protocol):
    async def resolve_txt(self, name: str) -> list[str]: ...


class DohTxtResolver:
    def __init__(self, resolver_url: str, timeout: float = 10.0):
        self.resolver_url = resolver_url
        self.timeout = timeout

    async def resolve_txt(self, name: str) -> list[str]:
        """Return TXT strings for name; multi-string records are concatenated."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(
                    self.resolver_url,
                    params={"name": name, "type": "TXT"},
                    headers={"accept": "application/dns-json"},
                )
            resp.raise_for_status()
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise DnsLookupError(str(e)) from e

        records = []
        for answer in payload.get("Answer", []) or []:
            if answer.get("type") != TXT_RECORD_TYPE:
                continue
            data = str(answer.get("data", ""))
            # "part one" "part two" -> part onepart two
            parts = [p for p in data.split('"') if p.strip()]
            records.append("".join(parts) if parts else data)
        return records
