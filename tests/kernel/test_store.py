"""Tests for the entity stores (in-memory and SQLAlchemy over SQLite)."""

import pytest

from refuse_kernel.db.store import SqlAlchemyEntityStore
from refuse_kernel.domain.entity import new_entity, update_entity
from refuse_kernel.exceptions import ConcurrencyConflictError, EntityNotFoundError
from refuse_kernel.services.entity_factory import EntityFactory
from refuse_kernel.services.entity_manager import EntityManager
from refuse_kernel.storage import EntityStore, InMemoryEntityStore


def _customer(clock, **attrs):
    return new_entity(
        "customer",
        {"name": "Acme", **attrs},
        clock=clock,
        external_ids=["CUST001"],
        metadata={"source": "api"},
    )


class TestProtocol:
    def test_both_stores_satisfy_protocol(self, sql_store):
        assert isinstance(sql_store, EntityStore)
        assert isinstance(InMemoryEntityStore(), EntityStore)


class TestInMemoryEntityStore:
    def test_put_get(self, deterministic_clock):
        store = InMemoryEntityStore("customer")
        entity = _customer(deterministic_clock)
        store.put(entity)
        assert store.get(entity.id) is entity
        assert store.get("missing") is None

    def test_compare_and_swap_stale(self, deterministic_clock):
        store = InMemoryEntityStore("customer")
        entity = _customer(deterministic_clock)
        store.put(entity)
        v2 = update_entity(entity, {"name": "V2"}, 1, clock=deterministic_clock)
        store.compare_and_swap(entity.id, 1, v2)

        with pytest.raises(ConcurrencyConflictError) as exc_info:
            store.compare_and_swap(entity.id, 1, v2)
        assert exc_info.value.expected_version == 1
        assert exc_info.value.current_version == 2

    def test_compare_and_swap_unknown(self, deterministic_clock):
        store = InMemoryEntityStore("customer")
        entity = _customer(deterministic_clock)
        with pytest.raises(EntityNotFoundError):
            store.compare_and_swap(entity.id, 1, entity)

    def test_delete_and_clear(self, deterministic_clock):
        store = InMemoryEntityStore()
        entity = _customer(deterministic_clock)
        store.put(entity)
        assert store.values() == [entity]
        assert store.delete(entity.id) is True
        assert store.delete(entity.id) is False
        store.put(entity)
        store.clear()
        assert store.count() == 0


class TestSqlAlchemyEntityStore:
    def test_put_get_round_trip(self, sql_store, deterministic_clock):
        entity = _customer(deterministic_clock, tags=["a", "b"])
        sql_store.put(entity)

        loaded = sql_store.get(entity.id)
        assert loaded == entity
        assert loaded.created_at.tzinfo is not None

    def test_get_unknown(self, sql_store):
        assert sql_store.get("missing") is None

    def test_put_overwrites(self, sql_store, deterministic_clock):
        entity = _customer(deterministic_clock)
        sql_store.put(entity)
        sql_store.put(update_entity(entity, {"name": "Renamed"}, 1, clock=deterministic_clock))
        assert sql_store.get(entity.id).attributes["name"] == "Renamed"
        assert sql_store.count() == 1

    def test_compare_and_swap(self, sql_store, deterministic_clock):
        entity = _customer(deterministic_clock)
        sql_store.put(entity)
        updated = update_entity(entity, {"name": "V2"}, 1, clock=deterministic_clock)

        assert sql_store.compare_and_swap(entity.id, 1, updated) == updated
        assert sql_store.get(entity.id).version == 2

    def test_compare_and_swap_stale(self, sql_store, deterministic_clock):
        entity = _customer(deterministic_clock)
        sql_store.put(entity)
        v2 = update_entity(entity, {"name": "V2"}, 1, clock=deterministic_clock)
        sql_store.compare_and_swap(entity.id, 1, v2)

        with pytest.raises(ConcurrencyConflictError) as exc_info:
            sql_store.compare_and_swap(entity.id, 1, v2)
        assert exc_info.value.current_version == 2
        assert sql_store.get(entity.id).attributes["name"] == "V2"

    def test_compare_and_swap_unknown(self, sql_store, deterministic_clock):
        entity = _customer(deterministic_clock)
        with pytest.raises(EntityNotFoundError):
            sql_store.compare_and_swap(entity.id, 1, entity)

    def test_delete_values_count_clear(self, sql_store, deterministic_clock):
        a = _customer(deterministic_clock)
        deterministic_clock.advance(1)
        b = _customer(deterministic_clock)
        sql_store.put(a)
        sql_store.put(b)

        assert [e.id for e in sql_store.values()] == [a.id, b.id]
        assert sql_store.delete(a.id) is True
        assert sql_store.delete(a.id) is False
        assert sql_store.count() == 1
        sql_store.clear()
        assert sql_store.count() == 0

    def test_type_scoping(self, deterministic_clock):
        customers = SqlAlchemyEntityStore(entity_type="customer")
        routes = SqlAlchemyEntityStore(customers._engine, entity_type="route")
        customers.put(_customer(deterministic_clock))
        routes.put(new_entity("route", {"name": "R"}, clock=deterministic_clock))

        assert customers.count() == 1
        assert routes.count() == 1
        routes.clear()
        assert customers.count() == 1

    def test_type_scoping_by_id(self, deterministic_clock):
        customers = SqlAlchemyEntityStore(entity_type="customer")
        routes = SqlAlchemyEntityStore(customers._engine, entity_type="route")
        customer = _customer(deterministic_clock)
        customers.put(customer)
        updated = update_entity(customer, {"name": "V2"}, 1, clock=deterministic_clock)

        assert routes.get(customer.id) is None
        with pytest.raises(EntityNotFoundError):
            routes.compare_and_swap(customer.id, 1, updated)
        assert routes.delete(customer.id) is False
        assert customers.get(customer.id).version == 1


class TestManagerOverSqlStore:
    def test_manager_lifecycle(self, sql_store, deterministic_clock):
        manager = EntityManager(EntityFactory("customer", deterministic_clock), store=sql_store)
        entity = manager.create({"name": "Acme", "status": "active"})
        manager.update(entity.id, {"status": "inactive"}, 1)

        with pytest.raises(ConcurrencyConflictError):
            manager.update(entity.id, {"status": "active"}, 1)

        assert manager.get(entity.id).version == 2
        assert manager.find({"status": "inactive"})[0].id == entity.id
