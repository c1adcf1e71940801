"""Templated responses for the guest access pages."""

from __future__ import annotations

from fastapi.templating import Jinja2Templates
from jinja2 import Environment, PackageLoader

__all__ = ["templates"]

templates = Jinja2Templates(
    env=Environment(
        loader=PackageLoader("murmurauth", package_path="templates"),
        autoescape=True,
    ),
)
"""The template manager."""
