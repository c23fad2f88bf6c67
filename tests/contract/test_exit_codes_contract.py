from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

from combo_tools.cli import main as cli_main
from combo_tools.logging.init import reset_logging

"""Exit code contract tests: 0 success, 1 fatal, 2 partial upstream failure."""

SCRIPT_TEXT = (
    '<script>const allRecomComboData=[{sku:"A",img:"{{media url=p/a.jpg}}",'
    'dots:[{sku:"B",top:"10%",left:"20%"}]}]</script>'
)


def _input(temp_workdir: Path, text: str) -> Path:
    path = temp_workdir / "data" / "combo.html"
    path.write_text(text, encoding="utf-8")
    return path


def _catalog_session(status: int = 200, payload=None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.text = "" if status == 200 else "upstream failure"
    resp.json.return_value = payload
    session = MagicMock()
    session.post.return_value = resp
    return session


def test_exit_code_fatal_startup(temp_workdir: Path, capsys):
    reset_logging()
    code = cli_main(["import", str(_input(temp_workdir, SCRIPT_TEXT))])
    captured = capsys.readouterr()
    assert code == 1
    assert "ERROR config:" in captured.out


def test_exit_code_all_success(write_config, temp_workdir: Path, capsys):
    reset_logging()
    payload = [{"data": {"items": [{"sku": "A", "name": "Sofa A", "url_key": "sofa-a", "image": ""}]}}]
    with patch("combo_tools.services.catalog.requests.Session", return_value=_catalog_session(payload=payload)):
        code = cli_main(["import", str(_input(temp_workdir, SCRIPT_TEXT))])
    out = capsys.readouterr().out
    assert code == 0
    assert "A,Sofa A,https://shop.example.com/sofa-a.html,https://media.example.com/media/p/a.jpg,B,10%:20%" in out
    assert "SUMMARY rows=1 dots=1 placed=1 partial=0 unplaced=0 unresolved=0" in out


def test_exit_code_parse_error_is_fatal(write_config, temp_workdir: Path, capsys):
    reset_logging()
    code = cli_main(["import", str(_input(temp_workdir, "<script>const allRecomComboData = {a: 1};</script>"))])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR import:" in out
    assert "SUMMARY" not in out


def test_exit_code_partial_upstream_failure(write_config, temp_workdir: Path, capsys):
    reset_logging()
    with patch("combo_tools.services.catalog.requests.Session", return_value=_catalog_session(status=500)):
        code = cli_main(["import", str(_input(temp_workdir, SCRIPT_TEXT))])
    out = capsys.readouterr().out
    assert code == 2
    assert "SUMMARY rows=1 dots=1 placed=1 partial=0 unplaced=0 unresolved=1" in out
    assert list((temp_workdir / "logs").glob("errors-*.log"))
