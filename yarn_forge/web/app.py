"""
Flask web application for Yarn Forge - parse, validate and play dialogue over HTTP
"""

import logging
import uuid
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from flask import Flask, jsonify, request

from yarn_forge.cli.validate_cmd import ProjectValidator
from yarn_forge.export.exporter import DialogueExporter
from yarn_forge.parser.lines import JumpLine, iter_lines
from yarn_forge.parser.project import YarnProject
from yarn_forge.runtime.runner import DialogueRunner, DialogueState
from yarn_forge.runtime.system import DialogueSystem
from yarn_forge.runtime.variables import Value

logger = logging.getLogger(__name__)


class PlaySession:
    """
    A dialogue being played through the API.
    Owns its own project, variables and runner so sessions never share state.
    """

    def __init__(self, content: str, variables: Optional[Mapping[str, Value]] = None):
        self.id = uuid.uuid4().hex
        self.system = DialogueSystem(initial_content=content, initial_variables=variables)
        self.commands_fired: List[Dict[str, Any]] = []
        self.runner: DialogueRunner = self.system.create_runner(on_command=self._record_command)

    def _record_command(self, command: str, args: List[str]):
        self.commands_fired.append({"command": command, "arguments": list(args)})

    def start(self, node: str) -> bool:
        return self.runner.start_node(node)

    def snapshot(self) -> Dict[str, Any]:
        """Convert the runner state to a JSON-serializable dict, draining fired commands"""
        line = self.runner.current_dialogue_line
        commands, self.commands_fired = self.commands_fired, []

        return {
            "id": self.id,
            "state": self.runner.state.value,
            "line": line.to_dict() if line else None,
            "choices": [
                {"index": i, "text": choice.text, "tags": list(choice.tags)}
                for i, choice in enumerate(self.runner.current_choices)
            ],
            "node": self.runner.current_node_title,
            "history": list(self.runner.node_history),
            "unresolved_jumps": self.runner.unresolved_jumps,
            "commands": commands,
            "variables": self.system.variables.to_json(),
        }


def project_graph(project: YarnProject) -> Tuple[List[Dict[str, Any]], List[Dict[str, str]]]:
    """Build node and jump-edge lists for graph views"""
    nodes = []
    edges = []

    for node in project:
        nodes.append({"id": node.title, "tags": list(node.tags), "line_count": len(node.lines)})
        targets = []
        for line in iter_lines(node.lines):
            if isinstance(line, JumpLine) and line.target_node not in targets:
                targets.append(line.target_node)
        for target in targets:
            edges.append({"source": node.title, "target": target, "missing": target not in project})

    return nodes, edges


def request_data() -> Dict[str, Any]:
    """JSON object from the request body, empty when the body is missing or not an object"""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def create_app(dialogues_root=None, max_sessions: int = 100):
    """Create and configure the Flask application"""
    app = Flask(__name__)

    # Default to the current working directory if not specified
    if dialogues_root is None:
        dialogues_root = Path.cwd()
    else:
        dialogues_root = Path(dialogues_root)

    app.config["DIALOGUES_ROOT"] = dialogues_root.resolve()
    app.config["SESSIONS"] = {}
    app.config["MAX_SESSIONS"] = max_sessions

    def get_session(session_id: str) -> Optional[PlaySession]:
        return app.config["SESSIONS"].get(session_id)

    def make_room_for_session():
        """Evict ended sessions first, then the oldest ones, until a new session fits"""
        sessions = app.config["SESSIONS"]
        limit = max(1, app.config["MAX_SESSIONS"])

        for session_id in [sid for sid, s in sessions.items() if s.runner.state is DialogueState.ENDED]:
            if len(sessions) < limit:
                return
            del sessions[session_id]

        while len(sessions) >= limit:
            session_id = next(iter(sessions))
            del sessions[session_id]
            logger.info("Evicted play session %s", session_id)

    def get_content(data: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
        content = data.get("content", "")
        if not isinstance(content, str):
            return None, "content must be a string"
        return content, None

    @app.route("/api/dialogues")
    def list_dialogues():
        """List all .yarn files under the dialogues root"""
        dialogue_dir = app.config["DIALOGUES_ROOT"]
        files = []

        if dialogue_dir.exists():
            for yarn_file in sorted(dialogue_dir.rglob("*.yarn")):
                rel_path = yarn_file.relative_to(dialogue_dir)
                files.append(
                    {
                        "path": str(yarn_file),
                        "relative_path": rel_path.as_posix(),
                        "name": yarn_file.stem,
                        "category": rel_path.parent.name if str(rel_path.parent) != "." else "root",
                    }
                )

        return jsonify({"files": files})

    @app.route("/api/file/<path:filename>")
    def get_file(filename):
        """Get content of a dialogue file"""
        dialogue_dir = app.config["DIALOGUES_ROOT"]
        file_path = (dialogue_dir / filename).resolve()

        if not file_path.is_relative_to(dialogue_dir) or not file_path.is_file():
            return jsonify({"error": "File not found"}), 404

        try:
            content = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return jsonify({"error": str(e)}), 500

        return jsonify({"content": content, "path": str(file_path), "name": file_path.stem})

    @app.route("/api/parse", methods=["POST"])
    def parse_dialogue():
        """Parse and validate dialogue content, return nodes, graph and issues"""
        data = request_data()
        content, error = get_content(data)
        if error:
            return jsonify({"error": error}), 400
        start_node = data.get("start_node")
        if start_node is not None and not isinstance(start_node, str):
            return jsonify({"error": "start_node must be a string"}), 400

        try:
            project = YarnProject()
            project.parse(content)

            validator = ProjectValidator(project, start_node=start_node)
            is_valid = validator.validate()
            graph_nodes, edges = project_graph(project)
        except Exception as e:
            logger.exception("Failed to parse dialogue")
            return jsonify({"error": str(e)}), 500

        return jsonify(
            {
                "success": True,
                "nodes": {node.title: node.to_dict() for node in project},
                "graph": {"nodes": graph_nodes, "edges": edges},
                "warnings": [str(warning) for warning in project.warnings],
                "validation": {
                    "valid": is_valid,
                    "errors": [asdict(error) for error in validator.errors],
                    "warnings": [asdict(warning) for warning in validator.warnings],
                },
                "stats": project.get_stats(),
            }
        )

    @app.route("/api/export", methods=["POST"])
    def export_dialogue():
        """Export dialogue content to JSON format"""
        data = request_data()
        content, error = get_content(data)
        if error:
            return jsonify({"error": error}), 400

        try:
            project = YarnProject()
            project.parse(content)
            exported = DialogueExporter().project_to_dict(project)
        except Exception as e:
            logger.exception("Failed to export dialogue")
            return jsonify({"error": str(e)}), 500

        return jsonify({"success": True, "json": exported})

    @app.route("/api/play", methods=["POST"])
    def start_play():
        """Start a play session at a node"""
        data = request_data()
        content, error = get_content(data)
        if error:
            return jsonify({"error": error}), 400
        node = data.get("node", "start")
        variables = data.get("variables") or {}

        if not isinstance(node, str):
            return jsonify({"error": "node must be a string"}), 400
        if not isinstance(variables, dict):
            return jsonify({"error": "variables must be an object"}), 400

        session = PlaySession(content, variables)
        if not session.start(node):
            return jsonify({"error": f"Node '{node}' not found"}), 404

        make_room_for_session()
        app.config["SESSIONS"][session.id] = session
        logger.info("Started play session %s at node '%s'", session.id, node)
        return jsonify(session.snapshot()), 201

    @app.route("/api/play/<session_id>")
    def get_play(session_id):
        """Get the current state of a play session"""
        session = get_session(session_id)
        if session is None:
            return jsonify({"error": "Session not found"}), 404
        return jsonify(session.snapshot())

    @app.route("/api/play/<session_id>/advance", methods=["POST"])
    def advance_play(session_id):
        """Move past the current line"""
        session = get_session(session_id)
        if session is None:
            return jsonify({"error": "Session not found"}), 404

        session.runner.advance()
        return jsonify(session.snapshot())

    @app.route("/api/play/<session_id>/choose", methods=["POST"])
    def choose_play(session_id):
        """Select one of the available choices by index"""
        session = get_session(session_id)
        if session is None:
            return jsonify({"error": "Session not found"}), 404

        data = request_data()
        index = data.get("index")
        if not isinstance(index, int) or isinstance(index, bool):
            return jsonify({"error": "No choice index specified"}), 400
        if not session.runner.is_waiting_for_choice:
            return jsonify({"error": "Session is not waiting for a choice"}), 409
        if not 0 <= index < len(session.runner.current_choices):
            return jsonify({"error": f"Invalid choice index: {index}"}), 400

        session.runner.select_choice(index)
        return jsonify(session.snapshot())

    @app.route("/api/play/<session_id>", methods=["DELETE"])
    def end_play(session_id):
        """Stop a play session and forget it"""
        session = app.config["SESSIONS"].pop(session_id, None)
        if session is None:
            return jsonify({"error": "Session not found"}), 404

        if session.runner.can_continue:
            session.runner.stop()
        return jsonify({"success": True})

    return app


def main():
    """Run the development server"""
    import argparse

    parser = argparse.ArgumentParser(description="Yarn Forge Web API")
    parser.add_argument("--dialogues", "-d", help="Path to dialogues directory", default=None)
    parser.add_argument("--port", "-p", help="Port to run on", type=int, default=5000)
    parser.add_argument("--debug", help="Run in debug mode", action="store_true")

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)
    app = create_app(dialogues_root=args.dialogues)

    print(f"\n{'=' * 60}")
    print("🧶 Yarn Forge Web API")
    print(f"{'=' * 60}")
    print(f"\n📂 Dialogues directory: {app.config['DIALOGUES_ROOT']}")
    print(f"🌐 Server running at: http://localhost:{args.port}")
    print("\nPress Ctrl+C to stop\n")

    app.run(host="127.0.0.1", port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
