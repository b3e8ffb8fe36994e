import asyncio

import httpx
import pytest

from repo_search.infrastructure.github.content_provider import GitHubContentProvider


def make_provider(reply, token="ghp_test"):
    requests = []

    def handler(request):
        requests.append(request)
        return reply(request)

    provider = GitHubContentProvider(
        api_url="https://api.github.test", token=token, transport=httpx.MockTransport(handler)
    )
    return provider, requests


def run(provider, operation):
    async def main():
        try:
            return await operation(provider)
        finally:
            await provider.aclose()

    return asyncio.run(main())


def test_file_tree_lists_blobs_only():
    def reply(request):
        return httpx.Response(
            200,
            json={
                "tree": [
                    {"path": "src", "type": "tree"},
                    {"path": "src/app.py", "type": "blob"},
                    {"path": "README.md", "type": "blob"},
                    {"path": "vendor/lib", "type": "commit"},
                ],
                "truncated": False,
            },
        )

    provider, requests = make_provider(reply)

    paths = run(provider, lambda p: p.get_file_tree("acme", "sample", "main"))

    assert paths == ["src/app.py", "README.md"]
    assert requests[0].url.path == "/repos/acme/sample/git/trees/main"
    assert requests[0].url.params["recursive"] == "1"
    assert requests[0].headers["Authorization"] == "Bearer ghp_test"


def test_file_tree_error_raises():
    provider, _ = make_provider(lambda r: httpx.Response(404, json={"message": "Not Found"}))

    with pytest.raises(httpx.HTTPStatusError):
        run(provider, lambda p: p.get_file_tree("acme", "missing", "main"))


def test_file_content_is_raw_text():
    provider, requests = make_provider(lambda r: httpx.Response(200, text="print('hi')\n"))

    content = run(provider, lambda p: p.get_file_content("acme", "sample", "src/app.py", "dev"))

    assert content == "print('hi')\n"
    assert requests[0].url.path == "/repos/acme/sample/contents/src/app.py"
    assert requests[0].url.params["ref"] == "dev"
    assert requests[0].headers["Accept"] == "application/vnd.github.raw"


def test_missing_file_content_is_none():
    provider, _ = make_provider(lambda r: httpx.Response(404))

    assert run(provider, lambda p: p.get_file_content("acme", "sample", "gone.py", "main")) is None


def test_anonymous_access_sends_no_token():
    provider, requests = make_provider(lambda r: httpx.Response(200, json={"tree": []}), token="")

    run(provider, lambda p: p.get_file_tree("acme", "sample", "main"))

    assert "Authorization" not in requests[0].headers
