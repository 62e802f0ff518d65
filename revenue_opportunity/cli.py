"""CLI entry point for the restaurant revenue opportunity analysis."""

import argparse
import asyncio
import json
import logging
import sys

from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.status import Status
from rich.table import Table

from . import messages as m
from .config import Settings
from .main import analyze_restaurant
from .models import CHANNELS
from .revenue import CHANNEL_LABELS, lever_totals, opportunities
from .serialize import encode_model
from .state import AppModel, Analysis, Error, update


def _money(value: float) -> str:
    return f"${value:,.0f}"


def build_edits(args: argparse.Namespace) -> list:
    """Manual values from the command line, as messages applied after detection."""
    edits = []
    if args.revenue is not None:
        edits.append(m.UpdateMonthlyRevenue(args.revenue))
    if args.ticket is not None:
        edits.append(m.UpdateAvgTicket(args.ticket))
    if args.sms_list is not None:
        edits.append(m.UpdateSMSListSize(args.sms_list))
    if args.email_list is not None:
        edits.append(m.UpdateEmailListSize(args.email_list))
    if args.instagram is not None:
        edits.append(m.UpdateSocialFollowers("instagram", args.instagram))
    if args.facebook is not None:
        edits.append(m.UpdateSocialFollowers("facebook", args.facebook))
    if args.local_pack_position is not None:
        edits.append(m.UpdateLocalPackPosition(args.local_pack_position))
    if args.organic_position is not None:
        edits.append(m.UpdateOrganicPosition(args.organic_position))
    if args.loyalty:
        edits.append(m.SetOffersLoyaltyProgram(True))
    if args.direct_mail_frequency is not None:
        edits.append(m.SetUsesDirectMail(args.direct_mail_frequency > 0))
        edits.append(m.UpdateMailerFrequency(args.direct_mail_frequency))
    if args.direct_mail_radius is not None:
        edits.append(m.UpdateDirectMailRadius(args.direct_mail_radius))
    if args.third_party_orders is not None:
        edits.append(m.SetUsesThirdPartyDelivery(args.third_party_orders > 0))
        edits.append(m.UpdateThirdPartyOrders(args.third_party_orders))
    return edits


def apply_levers(model: AppModel, levers: list[str]) -> AppModel:
    for lever in levers:
        model = update(model, m.ToggleLever(lever)).model
        if isinstance(model.state, Error):
            raise RuntimeError(model.state.message)
    return model


def render(console: Console, state: Analysis):
    snapshot = state.snapshot
    name = snapshot.place_name or "Your restaurant"
    console.print(
        f"\n[bold]{name}[/]  {_money(snapshot.monthly_revenue)}/mo revenue, "
        f"{_money(snapshot.avg_ticket)} avg ticket, {snapshot.transactions:,} transactions"
    )

    table = Table(title="Monthly revenue opportunity", show_lines=False)
    table.add_column("Channel")
    table.add_column("Current", justify="right")
    table.add_column("Potential", justify="right")
    table.add_column("Gap", justify="right", style="bold green")
    table.add_column("Confidence")
    table.add_column("Basis", style="dim")
    for row in opportunities(state.result):
        table.add_row(
            row.label,
            _money(row.current),
            _money(row.potential),
            _money(row.gap),
            row.confidence,
            row.attribution,
        )
    console.print(table)

    if state.result.keyword_breakdown:
        keywords = Table(title="Keyword breakdown")
        keywords.add_column("Keyword")
        keywords.add_column("Searches", justify="right")
        keywords.add_column("Position", justify="right")
        keywords.add_column("Gap", justify="right", style="green")
        for row in state.result.keyword_breakdown:
            keywords.add_row(
                row.keyword,
                f"{row.search_volume:,}",
                f"#{row.current_position} -> #{row.target_position}",
                _money(row.gap),
            )
        console.print(keywords)

    totals = lever_totals(state.result, state.levers)
    console.print(
        f"Total additional revenue: [bold green]{_money(state.result.total_additional_revenue)}[/]/mo"
    )
    on = [CHANNEL_LABELS[name] for name, enabled in state.levers.items() if enabled]
    if on:
        console.print(f"Levers on: {', '.join(on)}")
    console.print(
        f"With levers: {_money(totals.current)} of {_money(totals.potential)} "
        f"([bold]{_money(totals.missing)}[/] still missing)\n"
    )


def main():
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="revenue-opportunity",
        description="Estimate a restaurant's monthly revenue opportunity across marketing channels.",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--query", help="Restaurant name and city to look up on Google Places")
    source.add_argument(
        "--skip-search",
        action="store_true",
        help="Skip the lookup and start from default metrics",
    )
    parser.add_argument("--revenue", type=float, help="Monthly revenue in dollars")
    parser.add_argument("--ticket", type=float, help="Average ticket in dollars")
    parser.add_argument("--sms-list", type=int, help="SMS subscribers")
    parser.add_argument("--email-list", type=int, help="Email subscribers")
    parser.add_argument("--instagram", type=int, help="Instagram followers")
    parser.add_argument("--facebook", type=int, help="Facebook followers")
    parser.add_argument("--local-pack-position", type=int, help="Current Google Local Pack rank")
    parser.add_argument("--organic-position", type=int, help="Current organic search rank")
    parser.add_argument("--loyalty", action="store_true", help="A loyalty program is already running")
    parser.add_argument("--direct-mail-frequency", type=int, help="Mailers sent per month")
    parser.add_argument("--direct-mail-radius", type=float, help="Mailing radius in miles")
    parser.add_argument("--third-party-orders", type=int, help="Delivery app orders per month")
    parser.add_argument(
        "--lever",
        action="append",
        default=[],
        choices=CHANNELS,
        help="Count a channel at its potential (repeatable)",
    )
    parser.add_argument("--json", action="store_true", help="Print the encoded model as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    console = Console()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    settings = Settings.from_env(load_dotenv_file=False)
    if args.query:
        settings.validate()

    status = Status("", console=console)
    status.start()

    def on_progress(msg: str):
        status.update(f"[bold cyan]{msg}[/]")

    try:
        model = asyncio.run(
            analyze_restaurant(
                query=args.query,
                settings=settings,
                edits=build_edits(args),
                on_progress=on_progress,
            )
        )
        model = apply_levers(model, args.lever)
        status.stop()
    except KeyboardInterrupt:
        status.stop()
        console.print("\n[yellow]Cancelled.[/]")
        sys.exit(1)
    except Exception as e:
        status.stop()
        console.print(f"\n[bold red]Error:[/] {e}\n")
        sys.exit(1)

    if args.json:
        console.print_json(json.dumps(encode_model(model)))
    else:
        render(console, model.state)


if __name__ == "__main__":
    main()
