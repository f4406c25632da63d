from __future__ import annotations

import logging
from datetime import date

import psycopg
from flask import Blueprint, Flask, abort, current_app, jsonify, request, send_from_directory
from werkzeug.exceptions import HTTPException

from .config import ConfigError, configure_logging, load_config
from .context import AppContext, build_context
from .db import DbError
from .domain import ConflictError, NotFoundError, ValidationError
from .pdf import PdfError
from .reports import dashboard_stats
from .services.document_lookup import DocumentLookupError

logger = logging.getLogger(__name__)

api = Blueprint("api", __name__, url_prefix="/api")


def _ctx() -> AppContext:
    return current_app.extensions["osdesk"]


def _payload() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return request.form.to_dict()
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def _ok(status: int = 200, **data):
    return jsonify({"success": True, **data}), status


def _fail(status: int, message: str):
    return jsonify({"success": False, "message": message}), status


def _pdf_response(path):
    _ctx().renderer.cleanup()
    return _ok(filename=path.name, url=f"/api/pdf/{path.name}")


# --- dashboard ---

@api.get("/dashboard/stats")
def dashboard():
    with _ctx().db.session() as conn:
        stats = dashboard_stats(conn, date.today())
    return _ok(stats=stats)


# --- clients ---

@api.get("/clients")
def clients_list():
    ctx = _ctx()
    with ctx.db.session() as conn:
        return _ok(**ctx.clients.list_clients(conn, request.args.to_dict()))


@api.post("/clients")
def clients_create():
    ctx = _ctx()
    with ctx.db.transaction() as conn:
        client_id = ctx.clients.create_client(conn, _payload())
    return _ok(201, id=client_id, message="Client created.")


@api.get("/clients/lookup")
def clients_lookup():
    info = _ctx().lookup.lookup(request.args.get("document"), request.args.get("kind"))
    return _ok(data=info.to_dict())


@api.get("/clients/<int:client_id>")
def clients_get(client_id: int):
    ctx = _ctx()
    with ctx.db.session() as conn:
        return _ok(client=ctx.clients.get_client(conn, client_id))


@api.put("/clients/<int:client_id>")
def clients_update(client_id: int):
    ctx = _ctx()
    with ctx.db.transaction() as conn:
        ctx.clients.update_client(conn, client_id, _payload())
    return _ok(message="Client updated.")


@api.delete("/clients/<int:client_id>")
def clients_delete(client_id: int):
    ctx = _ctx()
    with ctx.db.transaction() as conn:
        ctx.clients.delete_client(conn, client_id)
    return _ok(message="Client deleted.")


@api.get("/clients/<int:client_id>/can-delete")
def clients_can_delete(client_id: int):
    ctx = _ctx()
    with ctx.db.session() as conn:
        ok, message = ctx.clients.can_delete(conn, client_id)
    return _ok(can_delete=ok, message=message)


# --- consultants ---

@api.get("/consultants")
def consultants_list():
    ctx = _ctx()
    with ctx.db.session() as conn:
        return _ok(**ctx.consultants.list_consultants(conn, request.args.to_dict()))


@api.post("/consultants")
def consultants_create():
    ctx = _ctx()
    with ctx.db.transaction() as conn:
        consultant_id = ctx.consultants.create_consultant(conn, _payload())
    return _ok(201, id=consultant_id, message="Consultant created.")


@api.get("/consultants/<int:consultant_id>")
def consultants_get(consultant_id: int):
    ctx = _ctx()
    with ctx.db.session() as conn:
        return _ok(consultant=ctx.consultants.get_consultant(conn, consultant_id))


@api.put("/consultants/<int:consultant_id>")
def consultants_update(consultant_id: int):
    ctx = _ctx()
    with ctx.db.transaction() as conn:
        ctx.consultants.update_consultant(conn, consultant_id, _payload())
    return _ok(message="Consultant updated.")


@api.delete("/consultants/<int:consultant_id>")
def consultants_delete(consultant_id: int):
    ctx = _ctx()
    with ctx.db.transaction() as conn:
        ctx.consultants.delete_consultant(conn, consultant_id)
    return _ok(message="Consultant deleted.")


@api.get("/consultants/<int:consultant_id>/can-delete")
def consultants_can_delete(consultant_id: int):
    ctx = _ctx()
    with ctx.db.session() as conn:
        ok, message = ctx.consultants.can_delete(conn, consultant_id)
    return _ok(can_delete=ok, message=message)


# --- services ---

@api.get("/services")
def services_list():
    ctx = _ctx()
    with ctx.db.session() as conn:
        return _ok(**ctx.services.list_services(conn, request.args.to_dict()))


@api.post("/services")
def services_create():
    ctx = _ctx()
    with ctx.db.transaction() as conn:
        service_id = ctx.services.create_service(conn, _payload())
    return _ok(201, id=service_id, message="Service created.")


@api.get("/services/<int:service_id>")
def services_get(service_id: int):
    ctx = _ctx()
    with ctx.db.session() as conn:
        return _ok(service=ctx.services.get_service(conn, service_id))


@api.put("/services/<int:service_id>")
def services_update(service_id: int):
    ctx = _ctx()
    with ctx.db.transaction() as conn:
        ctx.services.update_service(conn, service_id, _payload())
    return _ok(message="Service updated.")


@api.delete("/services/<int:service_id>")
def services_delete(service_id: int):
    ctx = _ctx()
    with ctx.db.transaction() as conn:
        ctx.services.delete_service(conn, service_id)
    return _ok(message="Service deleted.")


@api.get("/services/<int:service_id>/can-delete")
def services_can_delete(service_id: int):
    ctx = _ctx()
    with ctx.db.session() as conn:
        ok, message = ctx.services.can_delete(conn, service_id)
    return _ok(can_delete=ok, message=message)


# --- modalities ---

@api.get("/modalities")
def modalities_list():
    ctx = _ctx()
    with ctx.db.session() as conn:
        return _ok(**ctx.modalities.list_modalities(conn, request.args.to_dict()))


@api.post("/modalities")
def modalities_create():
    ctx = _ctx()
    with ctx.db.transaction() as conn:
        modality_id = ctx.modalities.create_modality(conn, _payload())
    return _ok(201, id=modality_id, message="Modality created.")


@api.get("/modalities/<int:modality_id>")
def modalities_get(modality_id: int):
    ctx = _ctx()
    with ctx.db.session() as conn:
        return _ok(modality=ctx.modalities.get_modality(conn, modality_id))


@api.put("/modalities/<int:modality_id>")
def modalities_update(modality_id: int):
    ctx = _ctx()
    with ctx.db.transaction() as conn:
        ctx.modalities.update_modality(conn, modality_id, _payload())
    return _ok(message="Modality updated.")


@api.delete("/modalities/<int:modality_id>")
def modalities_delete(modality_id: int):
    ctx = _ctx()
    with ctx.db.transaction() as conn:
        ctx.modalities.delete_modality(conn, modality_id)
    return _ok(message="Modality deleted.")


@api.get("/modalities/<int:modality_id>/can-delete")
def modalities_can_delete(modality_id: int):
    ctx = _ctx()
    with ctx.db.session() as conn:
        ok, message = ctx.modalities.can_delete(conn, modality_id)
    return _ok(can_delete=ok, message=message)


# --- service orders ---

@api.get("/orders")
def orders_list():
    ctx = _ctx()
    with ctx.db.session() as conn:
        return _ok(**ctx.orders.list_orders(conn, request.args.to_dict()))


@api.post("/orders")
def orders_create():
    ctx = _ctx()
    with ctx.db.transaction() as conn:
        order_id = ctx.orders.create_order(conn, _payload())
    return _ok(201, id=order_id, message="Service order created.")


@api.get("/orders/<int:order_id>")
def orders_get(order_id: int):
    ctx = _ctx()
    with ctx.db.session() as conn:
        return _ok(order=ctx.orders.get_order(conn, order_id))


@api.put("/orders/<int:order_id>")
def orders_update(order_id: int):
    ctx = _ctx()
    with ctx.db.transaction() as conn:
        ctx.orders.update_order(conn, order_id, _payload())
    return _ok(message="Service order updated.")


@api.delete("/orders/<int:order_id>")
def orders_delete(order_id: int):
    ctx = _ctx()
    with ctx.db.transaction() as conn:
        ctx.orders.delete_order(conn, order_id)
    return _ok(message="Service order deleted.")


@api.get("/orders/<int:order_id>/can-modify")
def orders_can_modify(order_id: int):
    ctx = _ctx()
    with ctx.db.session() as conn:
        ok, message = ctx.orders.can_modify(conn, order_id)
    return _ok(can_modify=ok, message=message)


@api.get("/orders/<int:order_id>/pdf")
def orders_pdf(order_id: int):
    ctx = _ctx()
    with ctx.db.session() as conn:
        path = ctx.orders.order_pdf(conn, order_id, ctx.renderer)
    return _pdf_response(path)


@api.post("/orders/<int:order_id>/send")
def orders_send(order_id: int):
    ctx = _ctx()
    with ctx.db.transaction() as conn:
        path = ctx.orders.send_order(conn, order_id, ctx.renderer)
    return _ok(message="Service order sent.", filename=path.name)


# --- order relation ---

@api.get("/relation")
def relation_list():
    ctx = _ctx()
    with ctx.db.session() as conn:
        return _ok(**ctx.relation.list_relation(conn, request.args.to_dict()))


@api.get("/relation/statistics")
def relation_statistics():
    ctx = _ctx()
    with ctx.db.session() as conn:
        summary = ctx.relation.statistics(conn, request.args.to_dict())
    return _ok(statistics=summary.to_dict())


@api.put("/relation/<int:order_id>/invoicing")
def relation_invoicing(order_id: int):
    ctx = _ctx()
    with ctx.db.transaction() as conn:
        flag = ctx.relation.set_invoiced(conn, order_id, _payload().get("invoiced"))
    return _ok(message="Invoicing status updated.", invoiced=flag.value)


@api.put("/relation/<int:order_id>/collection")
def relation_collection(order_id: int):
    ctx = _ctx()
    with ctx.db.transaction() as conn:
        flag = ctx.relation.set_collected(conn, order_id, _payload().get("collected"))
    return _ok(message="Collection status updated.", collected=flag.value)


@api.post("/relation/pdf")
def relation_pdf():
    ctx = _ctx()
    params = {**request.args.to_dict(), **_payload()}
    with ctx.db.session() as conn:
        path = ctx.relation.relation_pdf(conn, params, ctx.renderer)
    return _pdf_response(path)


@api.get("/pdf/<path:filename>")
def pdf_download(filename: str):
    renderer = _ctx().renderer
    if not filename.endswith(".pdf"):
        abort(404)
    return send_from_directory(renderer.output_dir.resolve(), filename, mimetype="application/pdf")


def _register_errors(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def _validation(e):
        return _fail(400, str(e))

    @app.errorhandler(NotFoundError)
    def _not_found(e):
        return _fail(404, str(e))

    @app.errorhandler(ConflictError)
    def _conflict(e):
        return _fail(409, str(e))

    @app.errorhandler(DocumentLookupError)
    def _lookup(e):
        return _fail(502, str(e))

    @app.errorhandler(DbError)
    def _db(e):
        return _fail(503, str(e))

    @app.errorhandler(psycopg.DataError)
    def _bad_value(e):
        logger.warning("Rejected value on %s %s: %s", request.method, request.path, e)
        return _fail(400, "Invalid filter or field value.")

    @app.errorhandler(PdfError)
    def _pdf(e):
        return _fail(500, str(e))

    @app.errorhandler(Exception)
    def _unexpected(e):
        if isinstance(e, HTTPException):
            return _fail(e.code or 500, e.description or e.name)
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return _fail(500, f"Internal error: {type(e).__name__}")


def create_app(ctx: AppContext) -> Flask:
    app = Flask(__name__)
    app.extensions["osdesk"] = ctx
    app.register_blueprint(api)
    _register_errors(app)
    return app


def main() -> int:
    try:
        cfg = load_config("config.toml")
    except ConfigError as e:
        print(f"[CONFIG ERROR] {e}")
        return 2
    configure_logging(cfg.log_level)
    app = create_app(build_context(cfg))
    app.run(debug=cfg.web.debug, host=cfg.web.host, port=cfg.web.port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
