import pytest

from app.core.responses import (
    created_response,
    error_response,
    normalize_pagination,
    pagination_meta,
    skip_and_take,
    success_response,
)


def test_success_envelope():
    body = success_response({"id": 1}, "Trip retrieved", meta={"page": 1})
    assert body == {
        "statusCode": 200,
        "message": "Trip retrieved",
        "data": {"id": 1},
        "meta": {"page": 1},
        "validationErrors": [],
    }


def test_created_envelope():
    assert created_response({"id": 1})["statusCode"] == 201


def test_error_envelope_has_no_data():
    errors = [{"field": "email", "message": "invalid", "value": "x"}]
    body = error_response("Validation failed", 400, errors)
    assert body["data"] is None
    assert body["statusCode"] == 400
    assert body["validationErrors"] == errors


@pytest.mark.parametrize(
    "page, limit, expected",
    [
        (None, None, (1, 10)),
        (0, 0, (1, 10)),
        (-3, 5, (1, 5)),
        (2, 500, (2, 100)),
    ],
)
def test_normalize_pagination(page, limit, expected):
    assert normalize_pagination(page, limit) == expected


def test_skip_and_take():
    assert skip_and_take(3, 10) == (20, 10)


def test_meta_for_last_page():
    assert pagination_meta(3, 10, 25) == {
        "page": 3,
        "limit": 10,
        "total": 25,
        "totalPages": 3,
        "hasNextPage": False,
        "hasPrevPage": True,
        "nextPage": None,
        "prevPage": 2,
    }


def test_meta_for_empty_result():
    meta = pagination_meta(1, 10, 0)
    assert meta["totalPages"] == 0
    assert meta["hasNextPage"] is False
    assert meta["hasPrevPage"] is False
