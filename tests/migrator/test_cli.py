import uuid

from typer.testing import CliRunner

from slogengine.migrator.cli import app
from slogengine.repos.posts_repo import JsonPostsRepo, MarkdownPostsRepo
from tests.conftest import make_post

runner = CliRunner()


def test_hashnode_command_imports_posts(tmp_path):
    source = tmp_path / "export"
    source.mkdir()
    (source / "hello.md").write_text("---\ntitle: Hello\ncuid: c1\n---\nBody text\n", encoding="utf-8")
    blogs = tmp_path / "blogs"

    result = runner.invoke(
        app, ["hashnode", str(source), "--username", "alice", "--blogs", str(blogs), "--format", "md"]
    )

    assert result.exit_code == 0, result.output
    assert "Imported 1 post(s)" in result.output
    (post,) = MarkdownPostsRepo(blogs).list_posts("alice")
    assert post.title == "Hello"
    assert post.originalId == "c1"


def test_hashnode_command_defaults_to_json(tmp_path):
    source = tmp_path / "export"
    source.mkdir()
    (source / "hello.md").write_text("---\ntitle: Hello\n---\nBody\n", encoding="utf-8")
    blogs = tmp_path / "blogs"

    result = runner.invoke(app, ["hashnode", str(source), "-u", "alice", "-b", str(blogs)])

    assert result.exit_code == 0, result.output
    assert len(JsonPostsRepo(blogs).list_posts("alice")) == 1


def test_hashnode_command_rejects_missing_source(tmp_path):
    result = runner.invoke(app, ["hashnode", str(tmp_path / "nope"), "-u", "alice"])

    assert result.exit_code != 0


def test_convert_command_for_one_user(tmp_path):
    post_id = str(uuid.uuid4())
    JsonPostsRepo(tmp_path).save_post("alice", make_post(id=post_id))
    (tmp_path / "alice" / "images").mkdir()
    (tmp_path / "alice" / "images" / f"{post_id}_a.png").write_bytes(b"x")

    result = runner.invoke(app, ["convert", "--blogs", str(tmp_path), "--username", "alice"])

    assert result.exit_code == 0, result.output
    assert "alice: converted 1 post(s), moved 1 image(s)" in result.output
    assert (tmp_path / "alice" / "posts" / f"{post_id}.md").is_file()


def test_convert_command_for_all_users(tmp_path):
    JsonPostsRepo(tmp_path).save_post("bob", make_post(id="p1"))

    result = runner.invoke(app, ["convert", "--blogs", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert "Converted all users" in result.output
    assert (tmp_path / "bob" / "posts" / "p1.md").is_file()
