"""Tests for the GitHub question bank sync."""
from unittest.mock import Mock

import pytest
import requests

from mockprep.infrastructure.data import (
    QuestionBankRepository, RepositorySyncError, RepositoryNotFoundError
)


def response(status_code=200, json_data=None, text=""):
    resp = Mock()
    resp.status_code = status_code
    resp.json.return_value = json_data
    resp.text = text
    return resp


def listing(*names):
    return [{"name": n, "download_url": f"https://raw.example/{n}", "type": "file"} for n in names]


def make_repo(session, **kwargs):
    return QuestionBankRepository("owner", "repo", "Interview Questions", "main", session=session, **kwargs)


def test_contents_url_quotes_the_path():
    repo = make_repo(Mock())

    assert repo.contents_url == "https://api.github.com/repos/owner/repo/contents/Interview%20Questions"


def test_listing_keeps_markdown_files_only():
    session = Mock()
    session.get.return_value = response(json_data=listing("a.md", "image.png", "b.md", "notes.txt"))

    files = make_repo(session).list_markdown_files()

    assert [f.name for f in files] == ["a.md", "b.md"]
    assert files[0].download_url == "https://raw.example/a.md"
    assert session.get.call_args.kwargs["params"] == {"ref": "main"}


def test_listing_is_capped():
    session = Mock()
    session.get.return_value = response(json_data=listing(*[f"{i}.md" for i in range(30)]))

    files = make_repo(session, max_files=20).list_markdown_files()

    assert len(files) == 20
    assert files[-1].name == "19.md"


def test_file_path_instead_of_directory_gives_empty_listing():
    session = Mock()
    session.get.return_value = response(json_data={"name": "a.md", "type": "file"})

    assert make_repo(session).list_markdown_files() == []


def test_missing_repository_raises_not_found():
    session = Mock()
    session.get.return_value = response(status_code=404)

    with pytest.raises(RepositoryNotFoundError):
        make_repo(session).list_markdown_files()


def test_server_error_raises_sync_error():
    session = Mock()
    session.get.return_value = response(status_code=503)

    with pytest.raises(RepositorySyncError):
        make_repo(session).list_markdown_files()


def test_network_failure_raises_sync_error():
    session = Mock()
    session.get.side_effect = requests.ConnectionError("offline")

    with pytest.raises(RepositorySyncError):
        make_repo(session).list_markdown_files()


def test_sync_downloads_every_file():
    contents = {
        "https://raw.example/a.md": "1. A?",
        "https://raw.example/b.md": "1. B?\n2. C?",
    }

    def fake_get(url, **kwargs):
        if url in contents:
            return response(text=contents[url])
        return response(json_data=listing("a.md", "b.md"))

    session = Mock()
    session.get.side_effect = fake_get

    files = make_repo(session).sync()

    assert [(f.name, f.content) for f in files] == [("a.md", "1. A?"), ("b.md", "1. B?\n2. C?")]


def test_fetch_without_download_url_raises():
    session = Mock()
    session.get.return_value = response(json_data=[{"name": "a.md", "download_url": None}])
    repo = make_repo(session)
    files = repo.list_markdown_files()

    with pytest.raises(RepositorySyncError):
        repo.fetch_content(files[0])
