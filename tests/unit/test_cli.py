from pathlib import Path

import pytest

from blogcms.app_shell.cli import build_parser, dispatch, main
from blogcms.app_shell.context import ServiceContext


@pytest.fixture(autouse=True)
def _memory_backend(monkeypatch):
    monkeypatch.delenv("BLOGCMS_STORE_BACKEND", raising=False)


def _run(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc:
        main(argv)
    return exc.value.code


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_check_slug_available(rules_path: Path, capsys):
    code = _run(["--rules", str(rules_path), "check-slug", "hello-world", "--lang", "es"])
    assert code == 0
    assert "es/hello-world: available" in capsys.readouterr().out


def test_check_slug_from_title(rules_path: Path, capsys):
    code = _run(["--rules", str(rules_path), "check-slug", "--title", "Hello, World!"])
    assert code == 0
    assert "en/hello-world" in capsys.readouterr().out


def test_check_slug_needs_input(rules_path: Path):
    assert _run(["--rules", str(rules_path), "check-slug"]) == 1


def test_audit_empty_store(rules_path: Path, capsys):
    assert _run(["--rules", str(rules_path), "audit"]) == 0
    assert "Checked 0 index entries against 0 posts" in capsys.readouterr().out


@pytest.mark.parametrize("command", ["publish", "unpublish", "delete"])
def test_writes_refused_on_memory_store(rules_path: Path, command, capsys, caplog):
    assert _run(["--rules", str(rules_path), command, "some-post"]) == 1
    assert "BLOGCMS_STORE_BACKEND=firestore" in caplog.text
    assert capsys.readouterr().out == ""


def test_duplicate_refused_on_memory_store(rules_path: Path, caplog):
    argv = ["--rules", str(rules_path), "duplicate", "some-post", "--author-uid", "u-1"]
    assert _run(argv) == 1
    assert "needs a persistent store" in caplog.text


def test_missing_rules_file(tmp_path: Path):
    assert _run(["--rules", str(tmp_path / "nope.yaml"), "audit"]) == 1


class TestDispatch:
    """Commands run against an injected store."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("command", "verb"), [("publish", "Published"), ("unpublish", "Unpublished")]
    )
    async def test_reports_past_tense(
        self, rules, store, service, make_post, author, capsys, command, verb
    ):
        post_id = await service.create_post(make_post({"en": "cli-post"}), author)
        ctx = ServiceContext.create(rules, store=store)

        code = await dispatch(ctx, build_parser().parse_args([command, post_id]))

        assert code == 0
        assert capsys.readouterr().out.strip() == f"{verb}: {post_id}"

    @pytest.mark.asyncio
    async def test_duplicate_reports_new_id(self, rules, store, service, make_post, author, capsys):
        source = await service.create_post(make_post({"en": "cli-source"}), author)
        ctx = ServiceContext.create(rules, store=store)

        args = build_parser().parse_args(["duplicate", source, "--author-uid", "u-2"])
        code = await dispatch(ctx, args)

        out = capsys.readouterr().out.strip()
        assert code == 0
        assert out.startswith("Duplicated: ")
        assert out.removeprefix("Duplicated: ") != source

    @pytest.mark.asyncio
    async def test_missing_post_fails(self, rules, store, capsys):
        ctx = ServiceContext.create(rules, store=store)

        code = await dispatch(ctx, build_parser().parse_args(["publish", "ghost"]))

        assert code == 1
        assert capsys.readouterr().out == ""
