import pytest

from osdesk.domain import (
    ConflictError,
    Flag,
    NotFoundError,
    OrderLockedError,
    OrderState,
    ValidationError,
    ensure_mutable,
)


class TestOrderState:
    def test_parse(self):
        assert OrderState.parse("S") is OrderState.SENT
        assert OrderState.parse("n") is OrderState.OPEN
        assert OrderState.parse(None) is OrderState.OPEN

    def test_sent_is_locked(self):
        ensure_mutable(OrderState.OPEN)
        with pytest.raises(OrderLockedError):
            ensure_mutable(OrderState.SENT, "deleted")

    def test_locked_is_a_conflict(self):
        assert issubclass(OrderLockedError, ConflictError)

    def test_flag_parse(self):
        assert Flag.parse(" s ") is Flag.YES
        assert Flag.parse("N") is Flag.NO
        assert Flag.parse("X") is None
        assert Flag.parse(1) is None


class TestCreate:
    def test_total_time_is_computed(self, order_service, order_payload, store, conn):
        order_id = order_service.create_order(conn, order_payload)
        order = store.orders[order_id]
        assert order["total_time"] == "08:30"
        assert order["order_date"] == "2024-03-15"
        assert order["sent"] == "N"

    def test_explicit_total_time_is_kept(self, order_service, order_payload, store, conn):
        order_id = order_service.create_order(conn, {**order_payload, "total_time": "10:00"})
        assert store.orders[order_id]["total_time"] == "10:00"

    def test_relation_row_follows(self, order_service, order_payload, store, conn):
        order_id = order_service.create_order(conn, order_payload)
        assert store.relation[order_id]["total_time"] == "08:30"
        assert store.relation[order_id]["invoiced"] == "N"

    def test_created_order_is_open_even_if_sent_requested(self, order_service, order_payload, store, conn):
        order_id = order_service.create_order(conn, {**order_payload, "sent": "S"})
        assert store.orders[order_id]["sent"] == "N"

    @pytest.mark.parametrize("missing", ["client_id", "order_date", "service_id", "consultant_id"])
    def test_required_fields(self, order_service, order_payload, conn, missing):
        with pytest.raises(ValidationError):
            order_service.create_order(conn, {**order_payload, missing: ""})

    @pytest.mark.parametrize(
        "field, value",
        [("start_time", "25:00"), ("end_time", "8h"), ("discount_time", "01:75"), ("total_time", "abc")],
    )
    def test_bad_times(self, order_service, order_payload, conn, field, value):
        with pytest.raises(ValidationError):
            order_service.create_order(conn, {**order_payload, field: value})

    def test_bad_date(self, order_service, order_payload, conn):
        with pytest.raises(ValidationError):
            order_service.create_order(conn, {**order_payload, "order_date": "31/02/2024"})

    def test_bad_id(self, order_service, order_payload, conn):
        with pytest.raises(ValidationError):
            order_service.create_order(conn, {**order_payload, "client_id": "abc"})


class TestLock:
    @pytest.fixture
    def sent_order(self, order_service, order_payload, renderer, conn):
        order_id = order_service.create_order(conn, order_payload)
        order_service.send_order(conn, order_id, renderer)
        return order_id

    def test_send_marks_sent_and_renders(self, sent_order, store, renderer):
        assert store.orders[sent_order]["sent"] == "S"
        assert ("order", sent_order) in renderer.rendered
        assert (renderer.output_dir / f"os_{sent_order}.pdf").exists()

    def test_update_rejected_once_sent(self, order_service, sent_order, order_payload, store, conn):
        with pytest.raises(OrderLockedError):
            order_service.update_order(conn, sent_order, {**order_payload, "detail": "changed"})
        assert store.orders[sent_order]["detail"] == "Server migration"

    def test_delete_rejected_once_sent(self, order_service, sent_order, store, conn):
        with pytest.raises(OrderLockedError):
            order_service.delete_order(conn, sent_order)
        assert sent_order in store.orders

    def test_resend_rejected(self, order_service, sent_order, renderer, conn):
        with pytest.raises(OrderLockedError):
            order_service.send_order(conn, sent_order, renderer)

    def test_can_modify(self, order_service, sent_order, order_payload, conn):
        ok, message = order_service.can_modify(conn, sent_order)
        assert not ok
        assert "sent" in message
        open_id = order_service.create_order(conn, order_payload)
        assert order_service.can_modify(conn, open_id) == (True, "")

    def test_relation_flags_stay_editable(self, relation_service, sent_order, store, conn):
        relation_service.set_invoiced(conn, sent_order, "S")
        assert store.relation[sent_order]["invoiced"] == "S"


class TestUpdateAndDelete:
    def test_update_recomputes_total(self, order_service, order_payload, store, conn):
        order_id = order_service.create_order(conn, order_payload)
        order_service.update_order(conn, order_id, {**order_payload, "end_time": "18:00"})
        assert store.orders[order_id]["total_time"] == "09:30"
        assert store.relation[order_id]["total_time"] == "09:30"

    def test_update_cannot_set_sent(self, order_service, order_payload, store, conn):
        order_id = order_service.create_order(conn, order_payload)
        with pytest.raises(ValidationError):
            order_service.update_order(conn, order_id, {**order_payload, "sent": "S"})
        assert store.orders[order_id]["sent"] == "N"

    def test_delete_removes_relation(self, order_service, order_payload, store, conn):
        order_id = order_service.create_order(conn, order_payload)
        order_service.delete_order(conn, order_id)
        assert order_id not in store.orders
        assert order_id not in store.relation

    def test_missing_order(self, order_service, order_payload, renderer, conn):
        with pytest.raises(NotFoundError):
            order_service.update_order(conn, 999, order_payload)
        with pytest.raises(NotFoundError):
            order_service.delete_order(conn, 999)
        with pytest.raises(NotFoundError):
            order_service.get_order(conn, 999)
        with pytest.raises(NotFoundError):
            order_service.send_order(conn, 999, renderer)


class TestSendAndRead:
    def test_send_requires_client_email(self, order_service, order_payload, store, seeded, renderer, conn):
        store.clients[seeded["client_id"]]["order_email"] = None
        order_id = order_service.create_order(conn, order_payload)
        with pytest.raises(ValidationError):
            order_service.send_order(conn, order_id, renderer)
        assert store.orders[order_id]["sent"] == "N"

    def test_get_order_renders_display_date(self, order_service, order_payload, conn):
        order_id = order_service.create_order(conn, order_payload)
        order = order_service.get_order(conn, order_id)
        assert order["order_date"] == "15/03/2024"
        assert order["client_name"] == "ACME Ltda"

    def test_list_orders_paginates_newest_first(self, order_service, order_payload, conn):
        ids = [order_service.create_order(conn, order_payload) for _ in range(3)]
        result = order_service.list_orders(conn, {"per_page": 2})
        assert [o["id"] for o in result["orders"]] == ids[::-1][:2]
        assert result["total"] == 3
        assert result["total_pages"] == 2

    def test_list_orders_filters_by_sent(self, order_service, order_payload, renderer, conn):
        first = order_service.create_order(conn, order_payload)
        order_service.create_order(conn, order_payload)
        order_service.send_order(conn, first, renderer)
        result = order_service.list_orders(conn, {"sent": "S"})
        assert [o["id"] for o in result["orders"]] == [first]
