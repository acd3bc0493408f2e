from __future__ import annotations

import argparse
import asyncio
import json
import sys

from order_browser.client import TablePaginationController, TableView, build_transport
from order_browser.core.config import get_settings
from order_browser.core.errors import ValidationError
from order_browser.core.logging import configure_logging
from order_browser.demo import seed_demo_orders
from order_browser.domain.orders import FulfilmentStatus, OrderQueryService, PageFilter, PageRequest
from order_browser.persistence.pg import init_db, session_scope

STATUS_CHOICES = [status.value for status in FulfilmentStatus]


def _build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Order Browser CLI")
    parser.add_argument("--log-level", default=None)
    top = parser.add_subparsers(dest="command", required=True)

    seed = top.add_parser("seed", help="Populate the store with demo orders")
    seed.add_argument("--count", type=int, default=None)
    seed.add_argument("--force", action="store_true", help="Replace existing orders")

    orders = top.add_parser("orders", help="Order queries")
    orders_sub = orders.add_subparsers(dest="orders_command", required=True)

    list_cmd = orders_sub.add_parser("list", help="Print one page of orders as JSON")
    list_cmd.add_argument("--page", type=int, default=1)
    list_cmd.add_argument("--limit", type=int, default=settings.default_page_limit)
    list_cmd.add_argument("--status", choices=STATUS_CHOICES, default=None)

    browse = orders_sub.add_parser("browse", help="Drive the paginated table and print the resulting view")
    browse.add_argument("--status", choices=["All", *STATUS_CHOICES], default="All")
    browse.add_argument("--page-size", type=int, default=settings.default_page_size)
    browse.add_argument("--jump", default=None, help="One-based page to jump to")
    browse.add_argument("--next", type=int, default=0, help="Press 'next page' this many times")

    return parser


def _list_orders(args: argparse.Namespace) -> int:
    init_db()
    request = PageRequest(
        page=args.page,
        limit=args.limit,
        filter=PageFilter(status=FulfilmentStatus(args.status) if args.status else None),
    )
    try:
        with session_scope() as session:
            service = OrderQueryService.for_session(session, max_limit=get_settings().max_page_limit)
            result = service.get_orders(request)
    except ValidationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    print(json.dumps(result.to_payload(), ensure_ascii=False, indent=2))
    return 0


def _view_summary(view: TableView) -> dict:
    return {
        "status_filter": str(getattr(view.status_filter, "value", view.status_filter)),
        "page": view.page_index + 1,
        "page_count": view.page_count,
        "page_size": view.page_size,
        "total_orders": view.total_orders,
        "error": view.error,
        "rows": [
            {
                "date": row.date,
                "customer": row.customer,
                "address": row.address,
                "status": row.status_label,
                "items": list(row.item_names),
            }
            for row in view.display_rows
        ],
    }


async def _browse(args: argparse.Namespace) -> TableView:
    transport = build_transport()
    controller = TablePaginationController(transport, page_size=args.page_size)
    try:
        controller.start()
        await controller.wait_idle()
        controller.set_status_filter(args.status)
        await controller.wait_idle()
        for _ in range(max(args.next, 0)):
            if not controller.next_page():
                break
            await controller.wait_idle()
        if args.jump is not None:
            controller.jump_to_page(args.jump)
            controller.flush_jump()
            await controller.wait_idle()
        return controller.view()
    finally:
        await controller.close()
        await transport.close()


def _browse_orders(args: argparse.Namespace) -> int:
    if get_settings().transport != "http":
        init_db()
    view = asyncio.run(_browse(args))
    print(json.dumps(_view_summary(view), ensure_ascii=False, indent=2))
    return 1 if view.is_error else 0


def _seed(args: argparse.Namespace) -> int:
    init_db()
    with session_scope() as session:
        result = seed_demo_orders(session, count=args.count, force=args.force)
    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "seed":
        return _seed(args)
    if args.command == "orders" and args.orders_command == "list":
        return _list_orders(args)
    if args.command == "orders" and args.orders_command == "browse":
        return _browse_orders(args)

    parser.error("unsupported command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
