"""Dialogue sheet export for lettering and voice work."""

import csv
import io
import logging
from pathlib import Path

from models.strip import Panel
from publisher.pages import safe_filename

logger = logging.getLogger(__name__)

HEADERS = ["Panel", "Character", "Dialogue", "Visual Note"]
NO_DIALOGUE = "NO_DIALOGUE"


def dialogue_rows(script: list[Panel]) -> list[list]:
    rows = []
    for panel in script:
        if not panel.dialogue:
            rows.append([panel.panel_number, NO_DIALOGUE, "", panel.visual_description])
            continue
        for line in panel.dialogue:
            rows.append([panel.panel_number, line.character, line.text, panel.visual_description])
    return rows


def dialogue_csv(script: list[Panel]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(HEADERS)
    writer.writerows(dialogue_rows(script))
    return buffer.getvalue()


def export_dialogue_csv(name: str, script: list[Panel], out_dir: Path) -> Path:
    """Write `<Name>_dialogue.csv` and return its path."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / f"{safe_filename(name, 'strip')}_dialogue.csv"
    path.write_text(dialogue_csv(script), encoding="utf-8")
    logger.info("Wrote dialogue sheet %s (%d panels)", path, len(script))
    return path
