"""
tests/test_overlay.py
Unit tests for specgen.overlay: standard definitions, entity objects, filter
families, default endpoints and error responses.
"""

from __future__ import annotations

from typing import Any, Dict, List

import pytest

from specgen.models import FieldDefinition, ObjectDefinition, Resource, Service
from specgen.overlay import (
    ERROR_CODE_STATUS,
    STANDARD_ERROR_STATUS_CODES,
    build_filter_family,
    default_endpoint,
    elaborate,
    error_status_codes,
    wants_filter,
)


def _field_names(obj: ObjectDefinition) -> List[str]:
    return [f.name for f in obj.fields]


def _obj(service: Service, name: str) -> ObjectDefinition:
    obj = service.get_object(name)
    assert obj is not None, f"object '{name}' missing"
    return obj


# ===========================================================================
# Purity, idempotence & determinism
# ===========================================================================


class TestElaborateProperties:
    """elaborate() is pure, idempotent and deterministic."""

    def test_input_not_mutated(self, service: Service) -> None:
        before = service.model_dump()
        elaborate(service)
        assert service.model_dump() == before

    def test_idempotent(self, elaborated: Service) -> None:
        again = elaborate(elaborated)
        assert again == elaborated
        assert again.model_dump() == elaborated.model_dump()

    def test_deterministic(self, service: Service) -> None:
        first = elaborate(service).model_dump_json()
        second = elaborate(service).model_dump_json()
        assert first == second

    def test_counts_for_reference_service(self, elaborated: Service) -> None:
        assert [e.name for e in elaborated.enums] == ["UserRole", "ErrorCode", "ErrorFieldCode"]
        assert len(elaborated.objects) == 7 + 4 * 6
        user = elaborated.get_resource("User")
        school = elaborated.get_resource("School")
        assert user is not None and school is not None
        assert [e.name for e in user.endpoints] == ["Create", "Get", "Update", "Delete", "List", "Search"]
        assert [e.name for e in school.endpoints] == ["Archive", "Get", "List", "Search"]

    def test_object_order_follows_declarations(self, elaborated: Service) -> None:
        names = [o.name for o in elaborated.objects]
        assert names[:7] == ["Address", "Error", "ErrorField", "Meta", "Pagination", "User", "School"]
        roots = [n for n in names if n.endswith("Filter")]
        assert roots == ["UserFilter", "SchoolFilter", "AddressFilter", "MetaFilter"]


# ===========================================================================
# Standard definitions
# ===========================================================================


class TestStandardDefinitions:
    """ErrorCode, Error, ErrorField, Meta and Pagination."""

    def test_error_code_enum(self, elaborated: Service) -> None:
        enum_def = elaborated.get_enum("ErrorCode")
        assert enum_def is not None
        assert enum_def.value_names == [
            "BadRequest",
            "Unauthorized",
            "Forbidden",
            "NotFound",
            "Conflict",
            "UnprocessableEntity",
            "RateLimited",
            "Internal",
        ]
        assert [ERROR_CODE_STATUS[v] for v in enum_def.value_names] == [
            400, 401, 403, 404, 409, 422, 429, 500,
        ]

    def test_error_object(self, elaborated: Service) -> None:
        error = _obj(elaborated, "Error")
        assert _field_names(error) == ["Code", "Message", "RequestID", "Fields"]
        assert error.get_field("Code").type == "ErrorCode"
        assert error.get_field("Fields").is_array

    def test_meta_object(self, elaborated: Service) -> None:
        meta = _obj(elaborated, "Meta")
        assert _field_names(meta) == ["createdAt", "createdBy", "updatedAt", "updatedBy"]
        assert meta.get_field("createdBy").is_nullable
        assert not meta.get_field("createdAt").is_nullable

    def test_pagination_object(self, elaborated: Service) -> None:
        assert _field_names(_obj(elaborated, "Pagination")) == ["offset", "limit", "total"]

    def test_authored_definition_wins(self, service_dict: Dict[str, Any]) -> None:
        service_dict["objects"].append(
            {"name": "Error", "description": "custom", "fields": [{"name": "detail", "type": "String"}]}
        )
        result = elaborate(Service.model_validate(service_dict))
        errors = [o for o in result.objects if o.name == "Error"]
        assert len(errors) == 1
        assert errors[0].description == "custom"


# ===========================================================================
# Entity objects
# ===========================================================================


class TestEntityObjects:
    """One object per resource returning full entities."""

    def test_user_entity_has_read_fields(self, elaborated: Service) -> None:
        assert _field_names(_obj(elaborated, "User")) == ["id", "email", "role", "address", "tags"]

    def test_audited_entity_gets_meta(self, elaborated: Service) -> None:
        school = _obj(elaborated, "School")
        assert _field_names(school) == ["name", "foundedAt", "active", "Meta"]
        assert school.get_field("Meta").type == "Meta"

    def test_delete_only_resource_has_no_entity(self) -> None:
        svc = Service.model_validate(
            {"name": "S", "resources": [{"name": "Token", "operations": ["Delete"]}]}
        )
        assert elaborate(svc).get_object("Token") is None


# ===========================================================================
# Filter families
# ===========================================================================


class TestFilterFamilies:
    """<R>Filter roots and their condition objects."""

    def test_root_shape(self, elaborated: Service) -> None:
        root = _obj(elaborated, "UserFilter")
        assert _field_names(root) == [
            "Equals",
            "NotEquals",
            "GreaterThan",
            "SmallerThan",
            "GreaterOrEqual",
            "SmallerOrEqual",
            "Contains",
            "NotContains",
            "Like",
            "NotLike",
            "Null",
            "NotNull",
            "OrCondition",
            "NestedFilters",
        ]
        assert root.get_field("Equals").type == "UserFilterEquals"
        assert root.get_field("Equals").is_nullable
        assert root.get_field("OrCondition").type == "Bool"
        nested = root.get_field("NestedFilters")
        assert (nested.type, nested.modifiers) == ("UserFilter", ["Array"])

    def test_condition_members(self, elaborated: Service) -> None:
        equals = _obj(elaborated, "UserFilterEquals")
        assert _field_names(equals) == ["id", "email", "role", "address"]
        assert equals.get_field("address").type == "AddressFilterEquals"
        assert all(f.modifiers == ["Nullable"] for f in equals.fields)

        assert _field_names(_obj(elaborated, "UserFilterRange")) == ["address"]
        assert _field_names(_obj(elaborated, "UserFilterLike")) == ["email", "address"]
        assert _field_names(_obj(elaborated, "UserFilterNull")) == ["address"]

        contains = _obj(elaborated, "UserFilterContains")
        assert _field_names(contains) == ["id", "email", "role", "address"]
        assert contains.get_field("email").modifiers == ["Array"]
        assert contains.get_field("address").modifiers == ["Nullable"]

    def test_range_picks_ordered_types(self, elaborated: Service) -> None:
        assert _field_names(_obj(elaborated, "SchoolFilterRange")) == ["foundedAt", "Meta"]
        meta_range = _obj(elaborated, "MetaFilterRange")
        assert _field_names(meta_range) == ["createdAt", "updatedAt"]

    def test_contains_skips_timestamps(self, elaborated: Service) -> None:
        assert _field_names(_obj(elaborated, "MetaFilterContains")) == ["createdBy", "updatedBy"]

    def test_empty_condition_objects_kept(self, elaborated: Service) -> None:
        assert _obj(elaborated, "SchoolFilterNull").fields == []
        assert _obj(elaborated, "AddressFilterRange").fields == []

    def test_list_without_filterable_fields_has_no_family(self) -> None:
        svc = Service.model_validate(
            {
                "name": "S",
                "resources": [
                    {
                        "name": "Tag",
                        "operations": ["List"],
                        "fields": [{"name": "label", "type": "String", "operations": ["Read"]}],
                    }
                ],
            }
        )
        assert not wants_filter(svc.resources[0])
        assert elaborate(svc).get_object("TagFilter") is None

    def test_self_referencing_object_family_terminates(self) -> None:
        svc = Service.model_validate(
            {
                "name": "S",
                "objects": [
                    {
                        "name": "Folder",
                        "fields": [
                            {"name": "title", "type": "String"},
                            {"name": "parent", "type": "Folder", "modifiers": ["Nullable"]},
                        ],
                    }
                ],
                "resources": [
                    {
                        "name": "Document",
                        "operations": ["Search"],
                        "fields": [
                            {"name": "folder", "type": "Folder", "operations": ["Read", "Search"]},
                        ],
                    }
                ],
            }
        )
        result = elaborate(svc)
        equals = _obj(result, "FolderFilterEquals")
        assert equals.get_field("parent").type == "FolderFilterEquals"
        assert sum(1 for o in result.objects if o.name == "FolderFilter") == 1

    @pytest.mark.parametrize("order_first", [True, False])
    def test_filter_typed_field_is_a_plain_value(self, order_first: bool) -> None:
        order = {
            "name": "Order",
            "operations": ["Search"],
            "fields": [{"name": "total", "type": "Int", "operations": ["Read", "Search"]}],
        }
        note = {
            "name": "Note",
            "operations": ["Search"],
            "fields": [
                {"name": "saved", "type": "OrderFilter", "operations": ["Read", "Search"]},
            ],
        }
        resources = [order, note] if order_first else [note, order]
        svc = Service.model_validate({"name": "S", "resources": resources})

        result = elaborate(svc)
        filter_names = sorted(o.name for o in result.objects if "Filter" in o.name)
        assert filter_names == sorted(
            f"{base}Filter{kind}"
            for base in ("Order", "Note")
            for kind in ("", "Equals", "Range", "Contains", "Like", "Null")
        )
        equals = _obj(result, "NoteFilterEquals")
        assert equals.get_field("saved").type == "OrderFilter"
        contains = _obj(result, "NoteFilterContains")
        assert contains.get_field("saved").modifiers == ["Array"]

        assert elaborate(result).model_dump() == result.model_dump()

    def test_condition_fields_drop_examples(self, elaborated: Service) -> None:
        user = _obj(elaborated, "User")
        assert any(f.example is not None for f in user.fields)
        for kind in ("Equals", "Range", "Contains", "Like", "Null"):
            assert all(f.example is None for f in _obj(elaborated, f"UserFilter{kind}").fields)

    def test_build_filter_family_directly(self) -> None:
        fields = [
            FieldDefinition(name="title", type="String"),
            FieldDefinition(name="due", type="Timestamp", modifiers=["Nullable"]),
        ]
        family = build_filter_family("Task", fields, lambda name: False)
        assert [o.name for o in family] == [
            "TaskFilter",
            "TaskFilterEquals",
            "TaskFilterRange",
            "TaskFilterContains",
            "TaskFilterLike",
            "TaskFilterNull",
        ]
        assert _field_names(family[2]) == ["due"]
        assert _field_names(family[3]) == ["title"]
        assert _field_names(family[5]) == ["due"]
        assert family[5].fields[0].type == "Bool"


# ===========================================================================
# Default endpoints
# ===========================================================================


class TestDefaultEndpoints:
    """Endpoint synthesis per declared operation."""

    def test_user_create_read_scenario(self, user_create_read_dict: Dict[str, Any]) -> None:
        result = elaborate(Service.model_validate(user_create_read_dict))
        user = result.get_resource("User")
        assert user is not None
        assert [e.name for e in user.endpoints] == ["Create", "Get"]

        create, get = user.endpoints
        assert (create.method, create.path) == ("POST", "")
        assert [p.name for p in create.request.body_params] == ["email"]
        assert (create.response.status_code, create.response.body_object) == (201, "User")

        assert (get.method, get.path) == ("GET", "/{id}")
        assert [p.name for p in get.request.path_params] == ["id"]
        assert (get.response.status_code, get.response.body_object) == (200, "User")
        assert get.full_path("User") == "/users/{id}"

        assert create.error_status_codes == [400, 401, 403, 404, 409, 422, 429, 500]
        assert get.error_status_codes == [400, 401, 403, 404, 409, 429, 500]

        assert _field_names(_obj(result, "User")) == ["id", "email"]
        assert result.get_object("UserFilter") is None

    def test_user_search_scenario(self, user_search_dict: Dict[str, Any]) -> None:
        result = elaborate(Service.model_validate(user_search_dict))
        search = result.get_resource("User").get_endpoint("Search")
        assert search is not None
        assert (search.method, search.path) == ("POST", "/_search")
        assert [p.name for p in search.request.query_params] == ["offset", "limit"]
        body = search.request.body_params
        assert [(p.name, p.type, p.modifiers) for p in body] == [("Filter", "UserFilter", ["Nullable"])]
        assert [f.name for f in search.response.body_fields] == ["data", "Pagination"]
        assert 422 in search.error_status_codes

        assert _field_names(_obj(result, "UserFilterEquals")) == ["email"]
        assert _obj(result, "UserFilter").get_field("NestedFilters").type == "UserFilter"

    def test_list_endpoint_query(self, elaborated: Service) -> None:
        list_ep = elaborated.get_resource("User").get_endpoint("List")
        params = list_ep.request.query_params
        assert [p.name for p in params] == ["offset", "limit", "id", "email", "role"]
        assert all(p.is_nullable for p in params[2:])
        assert params[1].default == "50"
        assert list_ep.response.body_fields[0].type == "User"
        assert list_ep.response.body_fields[0].is_array

    def test_update_and_delete(self, elaborated: Service) -> None:
        user = elaborated.get_resource("User")
        update = user.get_endpoint("Update")
        delete = user.get_endpoint("Delete")
        assert (update.method, update.path) == ("PATCH", "/{id}")
        assert [p.name for p in update.request.body_params] == ["email", "role", "address"]
        assert (delete.method, delete.response.status_code) == ("DELETE", 204)
        assert delete.response.body_object is None

    def test_authored_endpoint_wins(self, service_dict: Dict[str, Any]) -> None:
        service_dict["resources"][1]["endpoints"].append(
            {"name": "Get", "method": "GET", "path": "/{id}", "description": "custom get",
             "request": {"path_params": [{"name": "id", "type": "UUID"}]}}
        )
        result = elaborate(Service.model_validate(service_dict))
        school = result.get_resource("School")
        gets = [e for e in school.endpoints if e.name == "Get"]
        assert len(gets) == 1
        assert gets[0].description == "custom get"

    def test_duplicate_operations_ignored(self) -> None:
        resource = Resource.model_construct(
            name="Item", description="", operations=["Read", "Read"], fields=[], endpoints=[], audited=False
        )
        svc = Service(name="S")
        svc.resources.append(resource)
        result = elaborate(svc)
        assert [e.name for e in result.resources[0].endpoints] == ["Get"]

    def test_no_operations_no_endpoints(self) -> None:
        svc = Service.model_validate({"name": "S", "resources": [{"name": "Empty"}]})
        assert elaborate(svc).resources[0].endpoints == []

    def test_default_endpoint_helper(self, service: Service) -> None:
        endpoint = default_endpoint(service.get_resource("School"), "Read", service)
        assert endpoint.name == "Get"
        assert endpoint.title == "Get School"


# ===========================================================================
# Error responses
# ===========================================================================


class TestErrorStatusCodes:
    """422 only when the request carries a body."""

    @pytest.mark.parametrize(
        "resource_name, endpoint_name, has_422",
        [
            ("User", "Create", True),
            ("User", "Get", False),
            ("User", "Update", True),
            ("User", "Delete", False),
            ("User", "List", False),
            ("User", "Search", True),
            ("School", "Archive", False),
        ],
    )
    def test_unprocessable_entity_gating(
        self,
        elaborated: Service,
        resource_name: str,
        endpoint_name: str,
        has_422: bool,
    ) -> None:
        endpoint = elaborated.get_resource(resource_name).get_endpoint(endpoint_name)
        assert (422 in endpoint.error_status_codes) is has_422
        for code in STANDARD_ERROR_STATUS_CODES:
            assert code in endpoint.error_status_codes
        assert endpoint.error_status_codes == sorted(endpoint.error_status_codes)

    def test_helper(self, elaborated: Service) -> None:
        get = elaborated.get_resource("User").get_endpoint("Get")
        assert error_status_codes(get) == list(STANDARD_ERROR_STATUS_CODES)
