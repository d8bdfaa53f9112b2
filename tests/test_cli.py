import json
import os
import subprocess
import sys

FIXTURES = os.path.join(os.path.dirname(__file__), "fixtures")
DIVIDER = os.path.join(FIXTURES, "divider.json")
INVALID = os.path.join(FIXTURES, "invalid.json")


def _run(*args):
    return subprocess.run(
        [sys.executable, "-m", "netlint.cli", *args],
        capture_output=True,
        text=True,
    )


def test_cli_netlist():
    result = _run("netlist", DIVIDER)
    assert result.returncode == 0
    assert "R1  10k  Resistor_SMD:R_0805" in result.stdout
    assert "1  <- VCC" in result.stdout
    assert "(VOUT)" in result.stdout


def test_cli_summary():
    result = _run("netlist", "--summary", DIVIDER)
    assert result.returncode == 0
    assert "Components: 3" in result.stdout
    assert "Nets: 4" in result.stdout
    assert "Power nets: GND, VCC" in result.stdout


def test_cli_netlist_json():
    result = _run("netlist", "--json", DIVIDER)
    assert result.returncode == 0
    data = json.loads(result.stdout)
    assert [n["netName"] for n in data["nets"]] == ["VCC", "VOUT", "GND", "Net0"]
    vout = data["nets"][1]
    assert {(c["componentRef"], c["pinNumber"]) for c in vout["connections"]} == {
        ("R1", "2"),
        ("R2", "2"),
        ("U2", "7"),
    }


def test_cli_filter_ref():
    result = _run("netlist", "--ref", "R2", DIVIDER)
    assert result.returncode == 0
    assert "R2  4k7" in result.stdout
    # neighbours on shared nets are included
    assert "U2  ATtiny85" in result.stdout


def test_cli_filter_net():
    result = _run("netlist", "--net", "VCC", DIVIDER)
    assert result.returncode == 0
    assert "R1  10k" in result.stdout
    assert "U2  ATtiny85" not in result.stdout


def test_cli_bom():
    result = _run("bom", DIVIDER)
    assert result.returncode == 0
    assert "Ref" in result.stdout
    assert "ATtiny85" in result.stdout


def test_cli_erc():
    result = _run("erc", DIVIDER)
    assert result.returncode == 0
    assert "UnconnectedPin" in result.stdout
    assert "MissingPowerFlag" in result.stdout
    assert "MissingNetLabel" in result.stdout
    assert "1 error(s), 2 warning(s)" in result.stdout


def test_cli_erc_json_errors_only():
    result = _run("erc", "--json", "--errors-only", DIVIDER)
    assert result.returncode == 0
    data = json.loads(result.stdout)
    assert [v["type"] for v in data] == ["UnconnectedPin"]
    assert data[0]["objectIds"] == ["c-u2"]


def test_cli_erc_strict_fails_on_errors():
    result = _run("erc", "--strict", DIVIDER)
    assert result.returncode == 1


def test_cli_invalid_document():
    result = _run("erc", INVALID)
    assert result.returncode == 2
    assert "invalid document" in result.stderr


def test_cli_malformed_value(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({
        "sheets": [{"components": [{"reference": "R1", "position": {"x": "abc", "y": 0}}]}]
    }))
    result = _run("erc", str(path))
    assert result.returncode == 2
    assert "invalid document" in result.stderr
    assert "position.x" in result.stderr
    assert "Traceback" not in result.stderr


def test_cli_invalid_utf8(tmp_path):
    path = tmp_path / "latin1.json"
    path.write_bytes(b'{"name": "caf\xe9"}')
    result = _run("netlist", str(path))
    assert result.returncode == 2
    assert "invalid document" in result.stderr
    assert "Traceback" not in result.stderr


def test_cli_missing_file():
    result = _run("netlist", os.path.join(FIXTURES, "does-not-exist.json"))
    assert result.returncode == 2
    assert "netlint:" in result.stderr


def test_cli_without_command_prints_help():
    result = _run()
    assert result.returncode == 1
    assert "usage: netlint" in result.stdout
