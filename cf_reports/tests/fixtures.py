import json
import subprocess


def result_resource(
    guid=None,
    created_at=None,
    updated_at=None,
    name=None,
    state=None,
    relationships=None,
) -> dict:
    resource = {
        "guid": guid,
        "created_at": created_at,
        "updated_at": updated_at,
        "name": name,
        "relationships": relationships or {},
        "links": {},
    }
    if state is not None:
        resource["state"] = state
    return resource


def result_pagination(total_results=None, total_pages=None, next=None) -> dict:
    return {
        "total_results": total_results,
        "total_pages": total_pages,
        "first": None,
        "last": None,
        "next": next,
        "previous": None,
    }


def create_resources(count, prefix="guid"):
    return [result_resource(guid=f"{prefix}-{idx}", name=f"{prefix}-name-{idx}") for idx in range(count)]


def results_from_cf(pagination=None, resources=None) -> dict:
    return {
        "pagination": pagination or result_pagination(),
        "resources": resources if resources is not None else [],
    }


def relationship(name, guid) -> dict:
    return {name: {"data": {"guid": guid}}}


def org(guid, name):
    return result_resource(guid=guid, name=name)


def space(guid, name, org_guid):
    return result_resource(guid=guid, name=name, relationships=relationship("organization", org_guid))


def app(guid, name, space_guid, state="STOPPED", updated_at="2020-01-01T00:00:00Z"):
    return result_resource(
        guid=guid,
        name=name,
        state=state,
        created_at="2019-06-01T12:00:00Z",
        updated_at=updated_at,
        relationships=relationship("space", space_guid),
    )


class SubprocessResult:
    def __init__(self, stdout=None, stderr="", raw=False):
        self.stdout = stdout if raw else json.dumps(stdout if stdout is not None else {})
        self.stderr = stderr
        self.returncode = 0


def called_process_error(command="cf curl", stderr="FAILED"):
    return subprocess.CalledProcessError(1, command, output="", stderr=stderr)


def cf_curl_pages(*pages):
    """One ``SubprocessResult`` per page; every page but the last links to the next."""
    results = []
    for idx, resources in enumerate(pages):
        next_link = None
        if idx < len(pages) - 1:
            next_link = {"href": f"https://api.example.gov/v3/items?page={idx + 2}&per_page=10"}
        results.append(
            SubprocessResult(
                stdout=results_from_cf(pagination=result_pagination(next=next_link), resources=resources)
            )
        )
    return results


class FakeTransport:
    """Serves canned pages and single resources keyed by path."""

    def __init__(self, pages=None, resources=None):
        self.pages = pages or {}
        self.resources = resources or {}
        self.requested = []

    def request_page(self, token):
        self.requested.append(token)
        page = self.pages[token]
        if isinstance(page, Exception):
            raise page
        return page

    def get(self, path):
        self.requested.append(path)
        resource = self.resources[path]
        if isinstance(resource, Exception):
            raise resource
        return resource
