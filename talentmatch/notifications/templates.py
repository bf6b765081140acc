"""Template rendering for notification messages using Jinja2."""

from typing import Dict

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError

from talentmatch.logging import get_logger

from .models import NotificationTemplateError

logger = get_logger(__name__, component="notification")

OWNER_SUMMARY = "owner_summary"
CANDIDATE_MATCH = "candidate_match"


def _is_html_template(template_name) -> bool:
    return template_name is not None and template_name.endswith(".html.j2")


class TemplateRenderer:
    """Renders subject, HTML body and text body for a named message kind.

    A kind ``name`` is backed by three files in the ``email_templates``
    package directory: ``{name}_subject.j2``, ``{name}_body.html.j2`` and
    ``{name}_body.txt.j2``. Missing variables raise instead of rendering
    blank. Only the HTML body is autoescaped.
    """

    def __init__(self, template_dir: str = "email_templates"):
        self.env = Environment(
            loader=PackageLoader("talentmatch.notifications", template_dir),
            autoescape=_is_html_template,
            undefined=StrictUndefined,
        )

    def render(self, name: str, context: Dict) -> Dict[str, str]:
        """Render one message kind.

        Returns:
            Dict with ``subject`` (single line), ``html_body`` and ``text_body``

        Raises:
            NotificationTemplateError: If a template is missing or fails
        """
        try:
            subject = self.env.get_template(f"{name}_subject.j2").render(context)
            html_body = self.env.get_template(f"{name}_body.html.j2").render(context)
            text_body = self.env.get_template(f"{name}_body.txt.j2").render(context)
        except TemplateError as e:
            error_msg = f"Template rendering failed for '{name}': {e}"
            logger.error(error_msg, extra={"event": "notification.template.failed"})
            raise NotificationTemplateError(error_msg) from e

        return {
            "subject": " ".join(subject.split()),
            "html_body": html_body,
            "text_body": text_body,
        }
