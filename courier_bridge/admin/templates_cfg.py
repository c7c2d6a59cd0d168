"""
Jinja2 environment for the admin pages, shared by every admin router.
"""
from __future__ import annotations

import pathlib
from datetime import datetime

from fastapi.templating import Jinja2Templates

from courier_bridge.admin.crypto import mask

templates = Jinja2Templates(
    directory=str(pathlib.Path(__file__).parent.parent / "templates")
)


def _fmt_dt(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "–"


templates.env.filters["dt"] = _fmt_dt
templates.env.filters["mask"] = mask
