"""
Route access policy from policy/policy.json.

Each rule lists path globs (fnmatch), methods and the client types it
allows. The first rule matching both the path and the method decides;
requests no rule matches get meta.default_action. A denied public client
gets 401 (log in first), a denied logged-in client 403.
"""

import fnmatch
import json
import logging
from pathlib import Path
from typing import NamedTuple

from fastapi import Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

POLICY_PATH = Path(__file__).resolve().parent.parent / "policy" / "policy.json"


class Rule(NamedTuple):
    name: str
    paths: tuple[str, ...]
    methods: frozenset[str]
    allow: frozenset[str]

    def matches(self, path: str, method: str) -> bool:
        return method in self.methods and any(fnmatch.fnmatchcase(path, p) for p in self.paths)


class AccessPolicy:
    def __init__(self, path: Path = POLICY_PATH):
        self.path = path
        self.reload()

    def reload(self) -> None:
        raw = json.loads(self.path.read_text(encoding="utf-8"))
        meta = raw.get("meta", {})
        known = set(meta.get("client_types", []))

        rules = []
        for item in raw.get("access_rules", []):
            rule = Rule(
                name=item.get("name", f"rule{len(rules)}"),
                paths=tuple(item["path"]),
                methods=frozenset(m.upper() for m in item["methods"]),
                allow=frozenset(item["allow"]),
            )
            unknown = rule.allow - known
            if known and unknown:
                raise ValueError(f"Policy rule {rule.name!r} allows unknown client types: {sorted(unknown)}")
            rules.append(rule)

        self.rules = rules
        self.default_allow = meta.get("default_action", "deny") == "allow"

    def match(self, path: str, method: str) -> Rule | None:
        return next((rule for rule in self.rules if rule.matches(path, method)), None)

    def is_allowed(self, path: str, method: str, client_type: str) -> bool:
        rule = self.match(path, method)
        if rule is None:
            return self.default_allow
        return client_type in rule.allow


policy = AccessPolicy()


async def access_policy_middleware(request: Request, call_next):
    # CORS preflight carries no credentials
    if request.method == "OPTIONS":
        return await call_next(request)

    client_type = getattr(request.state, "client_type", "public")
    if policy.is_allowed(request.url.path, request.method, client_type):
        return await call_next(request)

    logger.info(f"Access denied: {client_type} {request.method} {request.url.path}")
    status = 401 if client_type == "public" else 403
    return JSONResponse(status_code=status, content={"detail": "Access denied"})
