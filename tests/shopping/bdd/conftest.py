"""Shared BDD fixtures and step definitions for the Shopping domain."""

import pytest
from pytest_bdd import given, parsers, then
from shopping.cart.item import CartItem
from shopping.catalog.fake_adapter import InMemoryCatalog
from shopping.catalog.port import CourseListing
from shopping.storage.local_adapter import LocalCartStorage
from shopping.storage.remote_adapter import RemoteCartStorage


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def catalog():
    return InMemoryCatalog()


@pytest.fixture()
def device():
    return {}


@pytest.fixture()
def error():
    """Container for capturing exceptions in When steps."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the catalog lists course "{stable_id}" at {price:f}'))
def _catalog_lists(catalog, stable_id, price):
    catalog.publish(CourseListing(course_id=f"course-{stable_id}", stable_id=stable_id, title=stable_id, price=price))


@given(parsers.cfparse('user "{user_id}" already has course "{stable_id}" at {price:f} in the account cart'))
def _account_cart_has(user_id, stable_id, price):
    RemoteCartStorage(user_id).add(
        CartItem.capture(CourseListing(course_id=f"course-{stable_id}", stable_id=stable_id, title=stable_id, price=price))
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the account cart of "{user_id}" holds "{stable_id}" at {price:f}'))
def _account_cart_holds(user_id, stable_id, price):
    items = {i.course_stable_id: i for i in RemoteCartStorage(user_id).list_items()}
    assert stable_id in items
    assert items[stable_id].unit_price == pytest.approx(price)


@then(parsers.cfparse('the account cart of "{user_id}" has {count:d} items'))
def _account_cart_count(user_id, count):
    assert len(RemoteCartStorage(user_id).list_items()) == count


@then("the guest cart on the device is empty")
def _device_empty(device):
    assert LocalCartStorage(device).is_empty()
