# Renderer.py
# Description: HTML rendering of the grouped list view and the single transcription page.
#
# Imports
from pathlib import Path
from typing import Any, Dict, List, Optional
#
# 3rd-party Libraries
from jinja2 import FileSystemLoader
from jinja2.sandbox import SandboxedEnvironment
from loguru import logger
#
# Local Imports
from transcriptions_Server_API.app.core.Sync.models import RICH_TEXT_FIELDS, TranscriptionRecord
from transcriptions_Server_API.app.core.Utils.Text_Sanitization import autop, sanitize_rich_text
from .Listing import GROUPINGS, ListingGroup, normalize_grouping
#
########################################################################################################################
#
# Constants:
#
TEMPLATES_DIR = Path(__file__).parent / "templates"

GROUPING_LABELS = {"maqam": "Maqam", "composer": "Composer", "form": "Form"}
#
# Functions:


class PageRenderer:
    def __init__(self, templates_dir: Path = TEMPLATES_DIR):
        self.env = SandboxedEnvironment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=True,
            enable_async=False,
        )

    def render_list(self, groups: List[ListingGroup], group_by: Optional[str] = None,
                    base_path: str = "/transcriptions") -> str:
        grouping = normalize_grouping(group_by)
        template = self.env.get_template("list_view.html")
        return template.render(
            groups=groups,
            group_by=grouping,
            group_label=GROUPING_LABELS[grouping],
            groupings=[(key, GROUPING_LABELS[key]) for key in GROUPINGS],
            base_path=base_path,
        )

    def render_detail(self, record: TranscriptionRecord) -> str:
        """Rich fields are sanitized again at output time, then paragraphised."""
        rich: Dict[str, Any] = {name: autop(sanitize_rich_text(getattr(record, name))) for name in RICH_TEXT_FIELDS}
        logger.debug(f"Rendering detail page for entity {record.entity_id}")
        return self.env.get_template("single_transcription.html").render(record=record, rich=rich)

#
# End of Renderer.py
########################################################################################################################
