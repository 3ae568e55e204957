from __future__ import annotations

from pathlib import Path

from fastapi.templating import Jinja2Templates

from cento_dashboard.services.weather import compass_label

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))
templates.env.filters["compass"] = compass_label
