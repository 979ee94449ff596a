import json

import pytest
from cryptography.fernet import Fernet

from mockbase.app_shell.cli import build_parser, main
from mockbase.app_shell.config import load_settings
from mockbase.app_shell.context import create_mock_backend


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "mockbase.yaml"
    path.write_text(
        f"storage_dir: {tmp_path / 'data'}\n"
        "secure_backend: encrypted\n"
        "plain_backend: file\n"
        "log_level: warning\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def run(config_path, capsys):
    def _run(*args):
        code = main(["--config", str(config_path), *args])
        return code, capsys.readouterr()

    return _run


@pytest.fixture
def seeded_backend(config_path, fast_hasher):
    # Real clock: the CLI process reads the session with the system time
    backend = create_mock_backend(load_settings(config_path, environ={}), hasher=fast_hasher)
    backend.sign_up("john.doe@example.com", "pw")
    backend.insert("todos", {"id": "1", "title": "Buy milk"})
    return backend


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_keygen_needs_no_config(capsys):
    assert main(["--config", "/does/not/exist.yaml", "keygen"]) == 0

    key = capsys.readouterr().out.strip()
    Fernet(key.encode("utf-8"))


def test_missing_config_is_critical(tmp_path, capsys):
    assert main(["--config", str(tmp_path / "missing.yaml"), "users"]) == 2
    assert capsys.readouterr().err.startswith("CRITICAL:")


def test_empty_store(run):
    assert run("users")[1].out == "No users.\n"
    assert run("tables")[1].out == "No tables.\n"
    assert run("session")[1].out == "Signed out.\n"


def test_lists_existing_data(run, seeded_backend):
    code, captured = run("users")
    assert code == 0
    assert captured.out.startswith("john.doe@example.com\tmock-user-")
    assert captured.out.rstrip().endswith("unconfirmed")

    assert run("tables")[1].out == "todos\t1 rows\n"

    rows = json.loads(run("dump", "todos")[1].out)
    assert rows[0]["title"] == "Buy milk"


def test_session(run, seeded_backend):
    shown = json.loads(run("session")[1].out)

    assert shown["email"] == "john.doe@example.com"
    assert shown["user_id"] == seeded_backend.current_session.user.id


def test_seed_then_dump(run, tmp_path):
    seed_file = tmp_path / "rows.json"
    seed_file.write_text(json.dumps([{"id": "a", "n": 1}, {"n": 2}]), encoding="utf-8")

    code, captured = run("seed", "scores", str(seed_file))
    assert code == 0
    assert captured.out == "Seeded 2 rows into 'scores'.\n"

    rows = json.loads(run("dump", "scores")[1].out)
    assert [r["n"] for r in rows] == [1, 2]


@pytest.mark.parametrize("content", ["{not json", json.dumps({"id": "a"}), json.dumps([1, 2])])
def test_seed_rejects_bad_files(run, tmp_path, content):
    seed_file = tmp_path / "rows.json"
    seed_file.write_text(content, encoding="utf-8")

    assert run("seed", "scores", str(seed_file))[0] == 1
    assert run("tables")[1].out == "No tables.\n"


def test_seed_missing_file(run, tmp_path):
    assert run("seed", "scores", str(tmp_path / "nope.json"))[0] == 1


def test_clear_requires_confirmation(run, seeded_backend):
    assert run("clear")[0] == 1
    assert "john.doe@example.com" in run("users")[1].out

    code, captured = run("clear", "--yes")
    assert code == 0
    assert run("users")[1].out == "No users.\n"
