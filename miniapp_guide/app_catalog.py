# miniapp_guide/app_catalog.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import commentjson

from miniapp_guide import app_config


@dataclass(slots=True)
class CatalogApp:
    app_id: str
    name: str
    description: str = ""


@dataclass(slots=True)
class AppCatalog:
    default_app_id: str
    apps: List[CatalogApp] = field(default_factory=list)
    # (app_id, lower-cased keywords), checked in order
    routing_rules: List[Tuple[str, Tuple[str, ...]]] = field(default_factory=list)

    def match(self, question: str) -> Optional[str]:
        lowered = (question or "").lower()
        for app_id, keywords in self.routing_rules:
            if any(k in lowered for k in keywords):
                return app_id
        return None

    def knows(self, app_id: str) -> bool:
        return any(app.app_id == app_id for app in self.apps)

    def describe(self) -> str:
        lines = []
        for number, app in enumerate(self.apps, start=1):
            lines.append(f"{number}. {app.app_id}")
            lines.append(f"   - 이름: {app.name}")
            lines.append(f"   - 설명: {app.description}")
            lines.append("")
        return "\n".join(lines).rstrip()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppCatalog":
        if not isinstance(data, dict):
            raise ValueError("App catalog must be a JSON object")
        apps = data.get("apps")
        if not isinstance(apps, list):
            raise ValueError("App catalog missing or invalid key: apps")
        default_app_id = data.get("default_app_id")
        if not isinstance(default_app_id, str) or not default_app_id.strip():
            raise ValueError("App catalog missing or invalid key: default_app_id")

        rules = []
        for rule in data.get("routing_rules") or []:
            keywords = tuple(str(k).lower() for k in rule.get("keywords") or [] if str(k).strip())
            if rule.get("app_id") and keywords:
                rules.append((str(rule["app_id"]), keywords))

        return cls(
            default_app_id=default_app_id.strip(),
            apps=[
                CatalogApp(
                    app_id=str(app["app_id"]),
                    name=str(app.get("name") or app["app_id"]),
                    description=str(app.get("description") or ""),
                )
                for app in apps
            ],
            routing_rules=rules,
        )


def load_app_catalog(path: str | Path = app_config.APP_CATALOG_PATH) -> AppCatalog:
    """
    Load the mini-app catalog from a JSON-with-comments file.
    Fails fast if the file or required top-level keys are missing.
    """
    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(f"App catalog file not found at '{cfg_path}'.")

    with cfg_path.open("r", encoding="utf-8") as f:
        data = commentjson.load(f)

    return AppCatalog.from_dict(data)
