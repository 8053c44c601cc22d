"""Operations on a single remote index."""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Iterable, Mapping
from urllib.parse import quote, urlencode

from .batch import OBJECT_ID, OperationTag, build_batch, ensure_object_ids
from .cancellation import Cancellation
from .config import Config
from .errors import IndexClientError
from .iterators import CursorIterator, object_page_fetcher, search_page_fetcher
from .options import RequestOptions, resolve
from .tasks import wait_for_completion
from .transport import ApiWrapper

_LOGGER = logging.getLogger(__name__)

COPY_SCOPE = ["settings", "synonyms", "rules"]


def _index_path(index_name: str, *segments: Any) -> str:
    parts = [quote(str(part), safe="") for part in (index_name, *segments)]
    return "/1/indexes/" + "/".join(parts)


def _endpoint_path(index_name: str, endpoint: str) -> str:
    # endpoint is a fixed literal such as "browse" or "rules/search"
    return f"{_index_path(index_name)}/{endpoint}"


def _with_defaults(
    options: RequestOptions | None,
    query: dict[str, Any] | None = None,
    body: dict[str, Any] | None = None,
) -> RequestOptions:
    return resolve(options).merged(query=query, body=body)


def build_query(args: Mapping[str, Any]) -> str:
    """Encode search parameters as a query string; lists and mappings become JSON."""
    encoded = {}
    for key, value in args.items():
        if isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        elif isinstance(value, (list, tuple, dict)):
            encoded[key] = json.dumps(value)
        else:
            encoded[key] = value
    return urlencode(encoded)


def task_id_of(response: Mapping[str, Any]) -> Any:
    try:
        return response["taskID"]
    except KeyError:
        raise IndexClientError(f"Response carries no taskID: {response!r}") from None


class SearchIndex:
    """Search, object, synonym, rule and task operations for one index.

    Every method takes an optional ``RequestOptions``; its query and body
    parameters are layered over the endpoint's own defaults.

    Args:
        name: Index name.
        api: Request layer shared with other indices of the same client.
        config: Supplies the default polling budget for ``wait_task``.
    """

    def __init__(self, name: str, api: ApiWrapper, config: Config | None = None) -> None:
        self._name = name
        self._api = api
        self._config = config if config is not None else Config()

    @property
    def name(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"SearchIndex({self._name!r})"

    # --- Search & settings ---

    def search(self, query: str, options: RequestOptions | None = None) -> dict:
        request = resolve(options).set_body_parameter("query", query)
        return self._api.read("POST", _endpoint_path(self._name, "query"), request)

    def clear(self, options: RequestOptions | None = None) -> dict:
        return self._api.write("POST", _endpoint_path(self._name, "clear"), {}, options)

    def get_settings(self, options: RequestOptions | None = None) -> dict:
        request = _with_defaults(options, query={"getVersion": 2})
        return self._api.read("GET", _endpoint_path(self._name, "settings"), request)

    def set_settings(self, settings: Mapping[str, Any], options: RequestOptions | None = None) -> dict:
        request = _with_defaults(options, query={"forwardToReplicas": True})
        return self._api.write("PUT", _endpoint_path(self._name, "settings"), dict(settings), request)

    # --- Objects ---

    def get_object(self, object_id: str, options: RequestOptions | None = None) -> dict:
        return self._api.read("GET", _index_path(self._name, object_id), options)

    def get_objects(self, object_ids: Iterable[str], options: RequestOptions | None = None) -> dict:
        """Fetch several objects in one call.

        An ``attributesToRetrieve`` body parameter (list or comma-separated
        string) is applied to every requested object.
        """
        request, attributes = resolve(options).without_body_parameter("attributesToRetrieve")
        if isinstance(attributes, (list, tuple)):
            attributes = ",".join(attributes)

        requests = []
        for object_id in object_ids:
            entry = {"indexName": self._name, OBJECT_ID: object_id}
            if attributes:
                entry["attributesToRetrieve"] = attributes
            requests.append(entry)

        request.set_body_parameter("requests", requests)
        return self._api.read("POST", "/1/indexes/*/objects", request)

    def save_object(self, obj: Mapping[str, Any], options: RequestOptions | None = None) -> dict:
        return self.save_objects([obj], options)

    def save_objects(self, objects: Iterable[Mapping[str, Any]], options: RequestOptions | None = None) -> dict:
        return self.batch(build_batch(objects, OperationTag.ADD_OBJECT), options)

    def partial_update_object(self, obj: Mapping[str, Any], options: RequestOptions | None = None) -> dict:
        return self.partial_update_objects([obj], options)

    def partial_update_objects(
        self, objects: Iterable[Mapping[str, Any]], options: RequestOptions | None = None
    ) -> dict:
        return self.batch(build_batch(objects, OperationTag.PARTIAL_UPDATE_OBJECT_NO_CREATE), options)

    def partial_update_or_create_object(
        self, obj: Mapping[str, Any], options: RequestOptions | None = None
    ) -> dict:
        return self.partial_update_or_create_objects([obj], options)

    def partial_update_or_create_objects(
        self, objects: Iterable[Mapping[str, Any]], options: RequestOptions | None = None
    ) -> dict:
        return self.batch(build_batch(objects, OperationTag.PARTIAL_UPDATE_OBJECT), options)

    def replace_all_objects(
        self,
        objects: Iterable[Mapping[str, Any]],
        options: RequestOptions | None = None,
        wait: bool = False,
    ) -> dict:
        """Swap the index contents for ``objects`` in three server-side steps.

        1. Copy settings, synonyms and rules into a temporary index.
        2. Save ``objects`` into the temporary index.
        3. Move the temporary index over this one.

        Steps 1 and 2 are awaited before the move. Nothing is rolled back: if
        step 2 or 3 fails, the temporary index is left behind and the caller
        has to delete it.

        Returns:
            The move response; with ``wait=True`` the move is awaited as well.
        """
        objects = list(objects)
        ensure_object_ids(objects)

        tmp_index = SearchIndex(f"{self._name}_tmp_{uuid.uuid4().hex[:13]}", self._api, self._config)
        _LOGGER.info("Replacing %s: copying scope to %s", self._name, tmp_index.name)
        copied = self._api.write(
            "POST",
            _endpoint_path(self._name, "operation"),
            {"operation": "copy", "destination": tmp_index.name, "scope": COPY_SCOPE},
            options,
        )
        self.wait_task(task_id_of(copied), options)

        _LOGGER.info("Replacing %s: saving %d object(s) into %s", self._name, len(objects), tmp_index.name)
        saved = tmp_index.save_objects(objects, options)
        tmp_index.wait_task(task_id_of(saved), options)

        _LOGGER.info("Replacing %s: moving %s over it", self._name, tmp_index.name)
        moved = self._api.write(
            "POST",
            _endpoint_path(tmp_index.name, "operation"),
            {"operation": "move", "destination": self._name},
            options,
        )
        if wait:
            tmp_index.wait_task(task_id_of(moved), options)
        return moved

    def delete_object(self, object_id: str, options: RequestOptions | None = None) -> dict:
        return self.delete_objects([object_id], options)

    def delete_objects(self, object_ids: Iterable[str], options: RequestOptions | None = None) -> dict:
        objects = [{OBJECT_ID: object_id} for object_id in object_ids]
        return self.batch(build_batch(objects, OperationTag.DELETE_OBJECT), options)

    def delete_by(self, filters: Mapping[str, Any], options: RequestOptions | None = None) -> dict:
        return self._api.write(
            "POST",
            _endpoint_path(self._name, "deleteByQuery"),
            {"params": build_query(filters)},
            options,
        )

    def batch(self, entries: list[dict], options: RequestOptions | None = None) -> dict:
        return self._api.write("POST", _endpoint_path(self._name, "batch"), {"requests": entries}, options)

    def browse(
        self,
        options: RequestOptions | None = None,
        cancellation: Cancellation | None = None,
    ) -> CursorIterator:
        """Iterate over every object. A ``cursor`` body parameter resumes a previous browse."""
        request, start = resolve(options).without_body_parameter("cursor")
        fetcher = object_page_fetcher(self._api, _endpoint_path)
        return CursorIterator(self._name, fetcher, request, start, cancellation)

    # --- Synonyms ---

    def search_synonyms(self, query: str, options: RequestOptions | None = None) -> dict:
        request = resolve(options).set_body_parameter("query", query)
        return self._api.read("POST", _endpoint_path(self._name, "synonyms/search"), request)

    def get_synonym(self, object_id: str, options: RequestOptions | None = None) -> dict:
        return self._api.read("GET", _index_path(self._name, "synonyms", object_id), options)

    def save_synonym(self, synonym: Mapping[str, Any], options: RequestOptions | None = None) -> dict:
        return self.save_synonyms([synonym], options)

    def save_synonyms(
        self, synonyms: Iterable[Mapping[str, Any]], options: RequestOptions | None = None
    ) -> dict:
        synonyms = [dict(synonym) for synonym in synonyms]
        ensure_object_ids(synonyms, "synonyms")
        request = _with_defaults(options, query={"forwardToReplicas": True})
        return self._api.write("POST", _endpoint_path(self._name, "synonyms/batch"), synonyms, request)

    def replace_all_synonyms(
        self, synonyms: Iterable[Mapping[str, Any]], options: RequestOptions | None = None
    ) -> dict:
        request = resolve(options).set_query_parameter("replaceExistingSynonyms", True)
        return self.save_synonyms(synonyms, request)

    def delete_synonym(self, object_id: str, options: RequestOptions | None = None) -> dict:
        request = _with_defaults(options, query={"forwardToReplicas": True})
        return self._api.write("DELETE", _index_path(self._name, "synonyms", object_id), {}, request)

    def clear_synonyms(self, options: RequestOptions | None = None) -> dict:
        request = _with_defaults(options, query={"forwardToReplicas": True})
        return self._api.write("POST", _endpoint_path(self._name, "synonyms/clear"), {}, request)

    def browse_synonyms(
        self,
        options: RequestOptions | None = None,
        cancellation: Cancellation | None = None,
    ) -> CursorIterator:
        return self._browse_search_endpoint("synonyms/search", options, cancellation)

    # --- Rules ---

    def search_rules(self, query: str, options: RequestOptions | None = None) -> dict:
        request = resolve(options).set_body_parameter("query", query)
        return self._api.read("POST", _endpoint_path(self._name, "rules/search"), request)

    def get_rule(self, object_id: str, options: RequestOptions | None = None) -> dict:
        return self._api.read("GET", _index_path(self._name, "rules", object_id), options)

    def save_rule(self, rule: Mapping[str, Any], options: RequestOptions | None = None) -> dict:
        return self.save_rules([rule], options)

    def save_rules(self, rules: Iterable[Mapping[str, Any]], options: RequestOptions | None = None) -> dict:
        rules = [dict(rule) for rule in rules]
        ensure_object_ids(rules, "rules")
        request = _with_defaults(options, query={"forwardToReplicas": True})
        return self._api.write("POST", _endpoint_path(self._name, "rules/batch"), rules, request)

    def replace_all_rules(self, rules: Iterable[Mapping[str, Any]], options: RequestOptions | None = None) -> dict:
        request = resolve(options).set_query_parameter("clearExistingRules", True)
        return self.save_rules(rules, request)

    def delete_rule(self, object_id: str, options: RequestOptions | None = None) -> dict:
        request = _with_defaults(options, query={"forwardToReplicas": True})
        return self._api.write("DELETE", _index_path(self._name, "rules", object_id), {}, request)

    def clear_rules(self, options: RequestOptions | None = None) -> dict:
        request = _with_defaults(options, query={"forwardToReplicas": True})
        return self._api.write("POST", _endpoint_path(self._name, "rules/clear"), {}, request)

    def browse_rules(
        self,
        options: RequestOptions | None = None,
        cancellation: Cancellation | None = None,
    ) -> CursorIterator:
        return self._browse_search_endpoint("rules/search", options, cancellation)

    # --- Tasks ---

    def get_task(self, task_id: Any, options: RequestOptions | None = None) -> dict:
        return self._api.read("GET", _index_path(self._name, "task", task_id), options)

    def wait_task(
        self,
        task_id: Any,
        options: RequestOptions | None = None,
        max_attempts: int | None = None,
        cancellation: Cancellation | None = None,
    ) -> dict:
        """Block until the task is published and return its status payload.

        Raises:
            TaskTimeoutError: still pending after ``max_attempts`` polls
                (default ``config.wait_task_retry``).
        """
        if max_attempts is None:
            max_attempts = self._config.wait_task_retry
        return wait_for_completion(
            task_id,
            self.get_task,
            max_attempts,
            options,
            cancellation=cancellation,
        )

    # --- Legacy per-index API keys ---

    def get_deprecated_api_key(self, key: str, options: RequestOptions | None = None) -> dict:
        return self._api.read("GET", _index_path(self._name, "keys", key), options)

    def delete_deprecated_api_key(self, key: str, options: RequestOptions | None = None) -> dict:
        return self._api.write("DELETE", _index_path(self._name, "keys", key), {}, options)

    def _browse_search_endpoint(
        self,
        endpoint: str,
        options: RequestOptions | None,
        cancellation: Cancellation | None,
    ) -> CursorIterator:
        request, start_page = resolve(options).without_body_parameter("page")
        fetcher = search_page_fetcher(self._api, _endpoint_path, endpoint, self._config.browse_page_size)
        return CursorIterator(self._name, fetcher, request, start_page, cancellation)
