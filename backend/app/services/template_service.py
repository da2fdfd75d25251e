# backend/app/services/template_service.py
"""
Template rendering for CoachLane emails.

Jinja2 templates live in ``app/templates``. Every render gets the common
context (brand, year, frontend URL) merged under the caller's variables.
"""

from datetime import datetime
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateNotFound

from ..core.config import settings
from ..core.constants import BRAND_NAME
from .template_registry import TemplateRegistry

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"


def _cents(value: int) -> str:
    """Format integer cents as dollars."""
    return f"${value / 100:,.2f}"


class TemplateService:
    """Centralized template rendering using Jinja2."""

    def __init__(self, template_dir: Path = TEMPLATE_DIR):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )
        self.env.filters["cents"] = _cents

    def get_common_context(self) -> Dict[str, Any]:
        return {
            "brand_name": BRAND_NAME,
            "current_year": datetime.now().year,
            "frontend_url": settings.frontend_url,
        }

    def render_template(
        self,
        template: TemplateRegistry | str,
        context: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> str:
        """
        Render a template with the given context.

        Raises:
            TemplateNotFound: If template doesn't exist
        """
        name = template.value if isinstance(template, TemplateRegistry) else template
        try:
            full_context = self.get_common_context()
            if context:
                full_context.update(context)
            full_context.update(kwargs)
            return self.env.get_template(name).render(full_context)
        except TemplateNotFound:
            self.logger.error(f"Template not found: {name}")
            raise
