import json

import heapview.api.server as server_mod
import heapview.client.http as http_mod
from heapview.cli.main import EXIT_PORT_IN_USE, main


def test_render_prints_wire_elements(tmp_path, capsys):
    doc = {
        "objects": {
            "1": {"type": "app.Bird", "fields": {"name": "2"}},
            "2": {"type": "String", "kind": "literal", "value": "tweety"},
        },
        "roots": {"bird": "1"},
    }
    path = tmp_path / "heap.json"
    path.write_text(json.dumps(doc), encoding="utf-8")

    assert main(["render", str(path)]) == 0

    wire = json.loads(capsys.readouterr().out)
    by_id = {r["data"]["id"]: r["data"] for r in wire}
    assert by_id["1"]["label"] == "Bird"
    assert by_id["2"]["label"] == '"tweety"'
    assert by_id["1_2"]["label"] == "name"


def test_render_reports_bad_description(tmp_path, capsys):
    path = tmp_path / "heap.json"
    path.write_text(json.dumps({"objects": {}, "roots": {"x": "missing"}}), encoding="utf-8")

    assert main(["render", str(path)]) == 2
    assert "unknown object" in capsys.readouterr().err


def test_render_missing_file(tmp_path, capsys):
    assert main(["render", str(tmp_path / "nope.json")]) == 2
    assert "file not found" in capsys.readouterr().err


def test_snapshot_executes_file(tmp_path, capsys):
    src = tmp_path / "prog.py"
    src.write_text(
        "class Bird:\n"
        "    def __init__(self, name):\n"
        "        self.name = name\n"
        "\n"
        "bird = Bird('tweety')\n"
        "LIMIT = 3\n",
        encoding="utf-8",
    )

    assert main(["snapshot", str(src), "--pretty"]) == 0

    wire = json.loads(capsys.readouterr().out)
    labels = {r["data"]["label"] for r in wire}
    assert "a Bird" in labels
    assert "LIMIT🔒" in labels
    assert "__file__" not in labels


def test_run_ticks_program(tmp_path, capsys):
    src = tmp_path / "game.py"
    src.write_text(
        "frames = []\n"
        "def tick(elapsed_ms):\n"
        "    frames.append(elapsed_ms)\n",
        encoding="utf-8",
    )

    assert main(["run", str(src), "--frames", "3", "--interval-ms", "1", "--skip-diagram"]) == 0
    assert "frames: 3" in capsys.readouterr().out


def test_run_requires_tick(tmp_path, capsys):
    src = tmp_path / "game.py"
    src.write_text("x = 1\n", encoding="utf-8")

    assert main(["run", str(src), "--skip-diagram"]) == 2
    assert "tick" in capsys.readouterr().err


def test_repl_refuses_busy_port(monkeypatch, capsys):
    monkeypatch.setattr(server_mod, "port_available", lambda host, port: False)

    assert main(["repl", "--port", "3999"]) == EXIT_PORT_IN_USE
    assert "--port" in capsys.readouterr().err


def test_watch_prints_changes(monkeypatch, capsys):
    snapshots = iter(
        [
            {"elements": [{"data": {"id": "a", "label": "A", "type": "object", "fontsize": "12px"}}]},
            {"elements": [{"data": {"id": "a", "label": "A", "type": "object", "fontsize": "12px"}}]},
            {"elements": []},
        ]
    )
    monkeypatch.setattr(http_mod.HeapviewHttpClient, "diagram", lambda self: next(snapshots))

    assert main(["watch", "--count", "3", "--interval", "0"]) == 0

    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert [(d["added"], d["removed"]) for d in lines] == [(1, 0), (0, 1)]
