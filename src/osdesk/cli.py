from __future__ import annotations

from .context import AppContext
from .domain import ConflictError, NotFoundError, ValidationError
from .importers import ImportError, import_clients_csv, import_services_json
from .pdf import PdfError


def _prompt(msg: str) -> str:
    return input(msg).strip()


def _filters(*keys: str) -> dict:
    params = {}
    for key in keys:
        value = _prompt(f"{key} (optional): ")
        if value:
            params[key] = value
    return params


def _print_statistics(stats: dict) -> None:
    print(
        f'total={stats["total_count"]} ({stats["total_time"]})  '
        f'invoiced={stats["invoiced_count"]} ({stats["invoiced_time"]}, {stats["invoiced_pct"]}%)  '
        f'not invoiced={stats["not_invoiced_count"]} ({stats["not_invoiced_time"]}, {stats["not_invoiced_pct"]}%)'
    )
    print(
        f'collected={stats["collected_count"]} ({stats["collected_time"]}, {stats["collected_pct"]}%)  '
        f'not collected={stats["not_collected_count"]} ({stats["not_collected_time"]}, {stats["not_collected_pct"]}%)'
    )
    for c in stats["clients"]:
        print(f'  {c["client_name"]}: {c["total_time"]}')


def run_cli(ctx: AppContext) -> None:
    db = ctx.db

    while True:
        print("\n=== osdesk ===")
        print("1) List clients")
        print("2) List service orders")
        print("3) Create service order")
        print("4) Send service order")
        print("5) Relation statistics")
        print("6) Mark order invoiced / not invoiced")
        print("7) Mark order collected / not collected")
        print("8) Service order PDF")
        print("9) Relation PDF")
        print("10) Import clients CSV")
        print("11) Import services JSON")
        print("0) Exit")

        choice = _prompt("> ")
        try:
            if choice == "0":
                return

            elif choice == "1":
                with db.session() as conn:
                    result = ctx.clients.list_clients(conn, {"per_page": 50, **_filters("name")})
                for r in result["clients"]:
                    print(f'#{r["id"]} [{r["kind"]}] {r["legal_name"]} doc={r["document"]} city={r["city"]}')
                print(f'{result["start"]}-{result["end"]} of {result["total"]}')

            elif choice == "2":
                params = _filters("client", "date_from", "date_to", "sent")
                with db.session() as conn:
                    result = ctx.orders.list_orders(conn, {"per_page": 50, **params})
                for r in result["orders"]:
                    print(
                        f'OS#{r["id"]} {r["order_date"]} {r["client_name"]} '
                        f'{r["service_description"]} total={r["total_time"]} sent={r["sent"]}'
                    )
                print(f'{result["start"]}-{result["end"]} of {result["total"]}')

            elif choice == "3":
                data = {
                    "client_id": _prompt("client_id: "),
                    "order_date": _prompt("date (DD/MM/YYYY): "),
                    "service_id": _prompt("service_id: "),
                    "consultant_id": _prompt("consultant_id: "),
                    "modality_id": _prompt("modality_id (optional): "),
                    "on_site_contact": _prompt("on-site contact (optional): "),
                    "start_time": _prompt("start HH:MM (optional): "),
                    "end_time": _prompt("end HH:MM (optional): "),
                    "discount_time": _prompt("discount HH:MM (optional): "),
                    "transfer_time": _prompt("transfer HH:MM (optional): "),
                    "detail": _prompt("detail (optional): "),
                }
                with db.transaction() as conn:
                    order_id = ctx.orders.create_order(conn, data)
                print(f"Created service order #{order_id}")

            elif choice == "4":
                order_id = int(_prompt("order_id: "))
                with db.transaction() as conn:
                    path = ctx.orders.send_order(conn, order_id, ctx.renderer)
                print(f"Order #{order_id} sent ({path})")

            elif choice == "5":
                params = _filters("client", "date_from", "date_to", "invoiced", "collected")
                with db.session() as conn:
                    summary = ctx.relation.statistics(conn, params)
                _print_statistics(summary.to_dict())

            elif choice in ("6", "7"):
                order_id = int(_prompt("order_id: "))
                value = _prompt("S/N: ")
                with db.transaction() as conn:
                    if choice == "6":
                        flag = ctx.relation.set_invoiced(conn, order_id, value)
                    else:
                        flag = ctx.relation.set_collected(conn, order_id, value)
                print(f"Order #{order_id} updated to {flag.value}")

            elif choice == "8":
                order_id = int(_prompt("order_id: "))
                with db.session() as conn:
                    path = ctx.orders.order_pdf(conn, order_id, ctx.renderer)
                print(f"PDF written to {path}")

            elif choice == "9":
                params = _filters("client", "date_from", "date_to", "invoiced", "collected")
                with db.session() as conn:
                    path = ctx.relation.relation_pdf(conn, params, ctx.renderer)
                print(f"PDF written to {path}")

            elif choice == "10":
                path = _prompt("path to clients.csv: ")
                with db.transaction() as conn:
                    n = import_clients_csv(conn, path, ctx.clients)
                print(f"Imported clients: {n}")

            elif choice == "11":
                path = _prompt("path to services.json: ")
                with db.transaction() as conn:
                    n = import_services_json(conn, path, ctx.service_repo)
                print(f"Imported services: {n}")

            else:
                print("Unknown choice.")

        except ValidationError as e:
            print(f"[INPUT ERROR] {e}")
        except NotFoundError as e:
            print(f"[NOT FOUND] {e}")
        except ConflictError as e:
            print(f"[CONFLICT] {e}")
        except (ImportError, PdfError) as e:
            print(f"[FILE ERROR] {e}")
        except ValueError as e:
            print(f"[VALUE ERROR] {e}")
        except Exception as e:
            print(f"[ERROR] {type(e).__name__}: {e}")
