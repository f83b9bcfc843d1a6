"""
Export parsed Yarn projects to various formats
"""

import csv
import json
from pathlib import Path
from typing import Any, Dict

from ..parser.lines import ChoiceSet, DialogueLine, iter_lines
from ..parser.project import YarnProject


class DialogueExporter:
    """Export a parsed project to various formats"""

    def project_to_dict(self, project: YarnProject) -> Dict[str, Any]:
        """Convert a project to a JSON-serializable dict"""
        stats = project.get_stats()
        return {
            "nodes": {node.title: node.to_dict() for node in project},
            "metadata": {
                "version": "1.0",
                "node_count": stats["nodes"],
                "dialogue_lines": stats["dialogue_lines"],
                "choices": stats["choices"],
                "speakers": stats["speakers"],
            },
        }

    def export_to_json(self, project: YarnProject, output_path: Path):
        """Export to JSON format"""
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(self.project_to_dict(project), f, indent=2, ensure_ascii=False)

    def export_to_csv(self, project: YarnProject, output_path: Path):
        """Export every dialogue line and choice text as a string table for localization"""
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w", newline="", encoding="utf-8") as csvfile:
            fieldnames = ["Node", "Line ID", "Character", "Text", "Tags"]

            writer = csv.DictWriter(csvfile, fieldnames=fieldnames)
            writer.writeheader()

            for node in project:
                for line in iter_lines(node.lines):
                    if isinstance(line, DialogueLine):
                        writer.writerow(
                            {
                                "Node": node.title,
                                "Line ID": line.line_id or "",
                                "Character": line.character or "",
                                "Text": line.text,
                                "Tags": " ".join(line.tags),
                            }
                        )
                    elif isinstance(line, ChoiceSet):
                        for choice in line.choices:
                            writer.writerow(
                                {
                                    "Node": node.title,
                                    "Line ID": "",
                                    "Character": "",
                                    "Text": choice.text,
                                    "Tags": " ".join(choice.tags),
                                }
                            )
