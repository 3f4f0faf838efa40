import json

from slogengine.repos.meta_repo import FileMetaRepo
from slogengine.schemas.blog import BlogMeta


def test_get_meta_creates_default_on_first_read(blogs_path):
    repo = FileMetaRepo(blogs_path)

    meta = repo.get_meta("alice")

    assert meta.title == "alice 블로그"
    stored = json.loads((blogs_path / "alice" / "meta.json").read_text(encoding="utf-8"))
    assert stored == {"title": "alice 블로그"}


def test_get_meta_uses_configured_title_template(blogs_path):
    repo = FileMetaRepo(blogs_path, default_title="Notes of {username}")

    assert repo.get_meta("bob").title == "Notes of bob"


def test_empty_title_falls_back_and_extra_fields_survive(blogs_path):
    path = blogs_path / "alice" / "meta.json"
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({"title": "", "theme": "dark"}), encoding="utf-8")

    meta = FileMetaRepo(blogs_path).get_meta("alice")

    assert meta.title == "alice 블로그"
    assert meta.model_dump()["theme"] == "dark"


def test_corrupt_meta_returns_default_without_overwriting(blogs_path):
    path = blogs_path / "alice" / "meta.json"
    path.parent.mkdir(parents=True)
    path.write_text("{not json", encoding="utf-8")

    meta = FileMetaRepo(blogs_path).get_meta("alice")

    assert meta.title == "alice 블로그"
    assert path.read_text(encoding="utf-8") == "{not json"


def test_save_meta_overwrites_existing(blogs_path):
    repo = FileMetaRepo(blogs_path)
    repo.get_meta("alice")

    repo.save_meta("alice", BlogMeta(title="My Blog", tagline="hi"))

    meta = repo.get_meta("alice")
    assert meta.title == "My Blog"
    assert meta.model_dump()["tagline"] == "hi"
