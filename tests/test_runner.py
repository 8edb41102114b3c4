import json

import pytest

from dspfjson.lines import join_document
from dspfjson.runner import main

from samples import field, header, sample_document, sample_payloads


@pytest.fixture
def dds_file(tmp_path):
    path = tmp_path / "ORDERS.dds"
    path.write_bytes(join_document(sample_document()).encode("utf-8"))
    return path


def test_dds_to_json_writes_named_output(tmp_path, dds_file, capsys):
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    assert main(["dds-to-json", str(out_dir), str(dds_file)]) == 0
    dspf = json.loads((out_dir / "ORDERS.json").read_text(encoding="utf-8"))
    assert dspf["formats"] == sample_payloads()
    assert "dds" in dspf
    assert "[OK]" in capsys.readouterr().out


def test_json_to_dds_round_trip(tmp_path, dds_file):
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    assert main(["dds-to-json", str(out_dir), str(dds_file)]) == 0
    target = tmp_path / "NEW.dds"
    assert main(["json-to-dds", str(out_dir / "ORDERS.json"), str(target), "--orig", str(dds_file)]) == 0
    assert target.read_bytes() == dds_file.read_bytes()


def test_json_to_dds_uses_env_original(tmp_path, dds_file, monkeypatch):
    in_json = tmp_path / "ORDERS.json"
    in_json.write_text(json.dumps({"text": "", "formats": sample_payloads()}), encoding="utf-8")
    monkeypatch.setenv("JSON_TO_DDS_ORIGINAL_DDS_FILE", str(dds_file))
    target = tmp_path / "NEW.dds"
    assert main(["json-to-dds", str(in_json), str(target)]) == 0
    assert target.read_bytes() == dds_file.read_bytes()


def test_json_to_dds_without_original(tmp_path, monkeypatch, capsys):
    in_json = tmp_path / "ORDERS.json"
    in_json.write_text(json.dumps({"formats": []}), encoding="utf-8")
    monkeypatch.delenv("JSON_TO_DDS_ORIGINAL_DDS_FILE", raising=False)
    assert main(["json-to-dds", str(in_json), str(tmp_path / "NEW.dds")]) == 2
    assert "JSON_TO_DDS_ORIGINAL_DDS_FILE" in capsys.readouterr().err


def test_missing_input_is_a_usage_error(tmp_path, capsys):
    assert main(["dds-to-json", str(tmp_path), str(tmp_path / "nope.dds")]) == 2
    assert main(["dds-to-json", str(tmp_path / "nodir"), str(tmp_path / "nope.dds")]) == 2
    assert main(["dds-to-json", str(tmp_path), "QDDSSRC", "--lib", "LIB"]) == 2
    assert "[ERROR]" in capsys.readouterr().err


def test_conversion_failure_exits_one(tmp_path, capsys):
    plain = tmp_path / "PLAIN.dds"
    plain.write_text(join_document([header("RECFMT1"), field("FLD1")]), encoding="utf-8")
    assert main(["dds-to-json", str(tmp_path), str(plain)]) == 1
    assert "not-rich-display" in capsys.readouterr().err


def test_verify_generic_name(tmp_path, dds_file, capsys):
    (tmp_path / "ORDBAD.dds").write_text(join_document([header("RECFMT1")]), encoding="utf-8")
    assert main(["verify", str(tmp_path / "ORDERS*")]) == 0
    assert "1 verification SUCCESS." in capsys.readouterr().out

    assert main(["verify", str(tmp_path / "ORD*")]) == 1
    err = capsys.readouterr().err
    assert "1 verification FAILED." in err
    assert "Fail #1 : " in err


def test_log_file_and_verbose(tmp_path, dds_file, capsys):
    log_file = tmp_path / "logs" / "run.log"
    assert main(["--verbose", "--log-file", str(log_file), "verify", str(dds_file)]) == 0
    logged = log_file.read_text(encoding="utf-8")
    assert logged.startswith("[RUN] start")
    assert "[CONFIG]" in logged
    assert "[SCAN] payloads=2" in logged
    assert "[RENDER]" in capsys.readouterr().out
