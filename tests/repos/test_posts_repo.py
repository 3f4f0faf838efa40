import datetime
import json
import textwrap

import pytest

from slogengine.errors import InvalidNameError
from slogengine.repos.posts_repo import (
    JsonPostsRepo,
    MarkdownPostsRepo,
    create_posts_repo,
    metadata_from_post,
)
from tests.conftest import UTC, make_post


def _full_post():
    return make_post(
        id="p1",
        title="안녕: Hello world",
        content="# Heading\n\nBody with ![a](/blogs/alice/posts/p1/a.png)",
        summary="Short summary",
        originalId="cuid-123",
        slug="hello-world",
        cover="/blogs/alice/posts/p1/cover.png",
        tags="python, fastapi",
        datePublished=datetime.datetime(2021, 5, 23, 3, 28, 51, tzinfo=UTC),
    )


@pytest.mark.parametrize("repo_cls", [MarkdownPostsRepo, JsonPostsRepo])
def test_save_then_get_round_trips_all_fields(blogs_path, repo_cls):
    repo = repo_cls(blogs_path)
    post = _full_post()

    repo.save_post("alice", post)
    loaded = repo.get_post("alice", "p1")

    assert loaded is not None
    assert loaded.model_dump() == post.model_dump()


@pytest.mark.parametrize("repo_cls", [MarkdownPostsRepo, JsonPostsRepo])
@pytest.mark.parametrize(
    "content",
    [
        "    indented code\n\nparagraph\n",
        "\n\nleading blank lines",
        "trailing newlines\n\n\n",
        "body with a rule\n\n---\n\nafter the rule",
        "",
    ],
)
def test_body_is_stored_verbatim(blogs_path, repo_cls, content):
    repo = repo_cls(blogs_path)
    repo.save_post("alice", make_post(id="p1", content=content))

    assert repo.get_post("alice", "p1").content == content


def test_markdown_file_has_front_matter_then_body(blogs_path):
    repo = MarkdownPostsRepo(blogs_path)
    path = repo.save_post("alice", _full_post())

    text = path.read_text(encoding="utf-8")

    assert path == blogs_path / "alice" / "posts" / "p1.md"
    assert text.startswith("---\n")
    assert "originalId: cuid-123" in text
    assert "datePublished: '2021-05-23T03:28:51+00:00'" in text
    assert text.rstrip().endswith("![a](/blogs/alice/posts/p1/a.png)")


def test_markdown_writes_empty_strings_for_missing_optionals():
    metadata = metadata_from_post(make_post(summary=None, cover=None))

    assert list(metadata) == [
        "title",
        "date",
        "summary",
        "author",
        "originalId",
        "slug",
        "cover",
        "tags",
    ]
    assert metadata["summary"] == ""
    assert metadata["cover"] == ""


def test_markdown_read_tolerates_loosely_typed_header(blogs_path):
    posts_dir = blogs_path / "alice" / "posts"
    posts_dir.mkdir(parents=True)
    (posts_dir / "loose.md").write_text(
        textwrap.dedent(
            """\
            ---
            title: 42
            date: 2024-01-02
            tags: [python, ai]
            summary: ""
            ---
            Body
            """
        ),
        encoding="utf-8",
    )

    post = MarkdownPostsRepo(blogs_path).get_post("alice", "loose")

    assert post.id == "loose"
    assert post.title == "42"
    assert post.date == datetime.datetime(2024, 1, 2, tzinfo=UTC)
    assert post.tags == "python, ai"
    assert post.summary is None
    assert post.content == "Body\n"


def test_unparseable_files_are_skipped_in_list_and_missing_in_get(blogs_path):
    repo = MarkdownPostsRepo(blogs_path)
    repo.save_post("alice", make_post(id="good"))
    posts_dir = blogs_path / "alice" / "posts"
    (posts_dir / "no-header.md").write_text("just text", encoding="utf-8")
    (posts_dir / "broken.md").write_text("---\ntitle: [oops\n---\nbody", encoding="utf-8")

    assert [p.id for p in repo.list_posts("alice")] == ["good"]
    assert repo.get_post("alice", "no-header") is None
    assert repo.get_post("alice", "broken") is None


def test_list_posts_returns_empty_for_unknown_user(blogs_path):
    assert MarkdownPostsRepo(blogs_path).list_posts("nobody") == []


def test_get_post_returns_none_when_missing(blogs_path):
    assert JsonPostsRepo(blogs_path).get_post("alice", "missing") is None


def test_delete_post_is_idempotent(blogs_path):
    repo = MarkdownPostsRepo(blogs_path)
    repo.save_post("alice", make_post(id="p1"))

    assert repo.delete_post("alice", "p1") is True
    assert repo.delete_post("alice", "p1") is False
    assert repo.post_exists("alice", "p1") is False


def test_save_leaves_no_temp_file_behind(blogs_path):
    repo = MarkdownPostsRepo(blogs_path)
    repo.save_post("alice", make_post(id="p1", content="first"))
    repo.save_post("alice", make_post(id="p1", content="second"))

    files = sorted(p.name for p in (blogs_path / "alice" / "posts").iterdir())

    assert files == ["p1.md"]
    assert repo.get_post("alice", "p1").content == "second"


def test_json_repo_reads_pascal_case_files(blogs_path):
    posts_dir = blogs_path / "alice" / "posts"
    posts_dir.mkdir(parents=True)
    (posts_dir / "legacy.json").write_text(
        json.dumps(
            {
                "Id": "ignored",
                "Title": "Legacy",
                "Content": "Old body",
                "Date": "2021-05-23T03:28:51Z",
                "OriginalId": "abc",
            }
        ),
        encoding="utf-8",
    )

    post = JsonPostsRepo(blogs_path).get_post("alice", "legacy")

    assert post.id == "legacy"
    assert post.title == "Legacy"
    assert post.content == "Old body"
    assert post.originalId == "abc"
    assert post.date == datetime.datetime(2021, 5, 23, 3, 28, 51, tzinfo=UTC)


def test_json_repo_keeps_non_ascii_text(blogs_path):
    repo = JsonPostsRepo(blogs_path)
    path = repo.save_post("alice", make_post(id="p1", title="한글 제목"))

    assert "한글 제목" in path.read_text(encoding="utf-8")


@pytest.mark.parametrize("bad", ["..", "a/b", "", "a\\b"])
def test_unsafe_names_are_rejected(blogs_path, bad):
    repo = MarkdownPostsRepo(blogs_path)
    with pytest.raises(InvalidNameError):
        repo.post_path("alice", bad)
    with pytest.raises(InvalidNameError):
        repo.posts_dir(bad)


@pytest.mark.parametrize(
    ("post_format", "repo_cls"),
    [("md", MarkdownPostsRepo), ("json", JsonPostsRepo), ("JSON", JsonPostsRepo), (".json", JsonPostsRepo)],
)
def test_create_posts_repo_picks_format(blogs_path, post_format, repo_cls):
    assert isinstance(create_posts_repo(blogs_path, post_format), repo_cls)
