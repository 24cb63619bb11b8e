"""Interactive CLI — click entry point + interactive command loop.

Session startup:
  1. Build a session from the defaults, overridden by any command-line option.
  2. Render the loan summary, the bonus table and the combined projection.
  3. Enter the interactive loop.

Command loop:
  - Edit loan parameters or any bonus field, toggle, add or remove bonuses.
  - Undo the last removal (for a few seconds), reset everything to defaults.
  - Search the best combination and optionally apply it, or exit.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

import click
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .calculator import ComboProjection
from .config import DEFAULT_OBJECTIVE, VALID_OBJECTIVES, ZERO
from .optimizer import ComboSearchResult, best_combination
from .parsing import parse_number, parse_term_years
from .session import BonusSession

console = Console()
err_console = Console(stderr=True, style="bold red")

logger = logging.getLogger(__name__)

# ──────────────────────────────────────────────────────────────────────────────
# Logging
# ──────────────────────────────────────────────────────────────────────────────

def setup_logging(verbose: bool) -> None:
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root.addHandler(RichHandler(console=Console(stderr=True), show_path=False))


# ──────────────────────────────────────────────────────────────────────────────
# Formatting helpers
# ──────────────────────────────────────────────────────────────────────────────

def _fmt_money(value: Decimal) -> str:
    return f"{value:,.2f} €"


def _fmt_pct(value: Decimal) -> str:
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return f"{text}%"


def _fmt_years(n: int) -> str:
    return f"{n} year" if n == 1 else f"{n} years"


def _signed(value: Decimal, text: str) -> str:
    colour = "green" if value >= ZERO else "red"
    return f"[{colour}]{text}[/{colour}]"


# ──────────────────────────────────────────────────────────────────────────────
# Display
# ──────────────────────────────────────────────────────────────────────────────

def display_summary(session: BonusSession) -> None:
    params = session.params
    t = Table(title="Loan Summary", box=box.SIMPLE, show_header=False, padding=(0, 2))
    t.add_column("Field", style="cyan")
    t.add_column("Value", justify="right")
    t.add_row("Base monthly payment", _fmt_money(session.base_payment()))
    t.add_row("Base rate", _fmt_pct(params.base_rate_pct))
    t.add_row("Capital", _fmt_money(params.capital))
    t.add_row("Term", _fmt_years(params.term_years))
    t.add_row("Combined discount cap", _fmt_pct(params.max_combo_discount_pct))
    console.print(t)


def display_bonuses(session: BonusSession) -> None:
    params = session.params
    t = Table(title="Bonuses", box=box.MINIMAL_HEAVY_HEAD)
    t.add_column("Id", style="cyan", no_wrap=True)
    t.add_column("On", justify="center")
    t.add_column("Bonus")
    for col in ("Discount", "Cost/yr", "Rate", "Payment", "Saving/mo", "Net/yr", "Net term"):
        t.add_column(col, justify="right")

    for p in session.projections():
        b = p.bonus
        t.add_row(
            b.id,
            "✔" if b.enabled else "·",
            escape(b.name),
            _fmt_pct(b.discount_pct),
            _fmt_money(b.annual_cost),
            _fmt_pct(p.new_rate),
            _fmt_money(p.new_payment),
            _signed(p.monthly_saving, _fmt_money(p.monthly_saving)),
            _signed(p.net_annual, _fmt_money(p.net_annual)),
            _signed(p.net_term, _fmt_money(p.net_term)),
        )
    console.print(t)
    console.print(
        f"[dim]Each row is computed on its own against the base rate "
        f"{_fmt_pct(params.base_rate_pct)}; rows do not add up.[/dim]"
    )


def _combo_table(title: str, combo: ComboProjection, session: BonusSession) -> Table:
    params = session.params
    t = Table(title=title, box=box.SIMPLE, show_header=False, padding=(0, 2))
    t.add_column("Field", style="cyan")
    t.add_column("Value", justify="right")
    t.add_row("Active bonuses", str(combo.enabled_count))
    t.add_row(
        "Applied discount",
        f"{_fmt_pct(combo.applied_discount)} (cap {_fmt_pct(params.max_combo_discount_pct)})",
    )
    t.add_row("Resulting rate", _fmt_pct(combo.combo_rate))
    t.add_row("New payment", _fmt_money(combo.combo_payment))
    t.add_row("Monthly saving", _signed(combo.monthly_saving, _fmt_money(combo.monthly_saving)))
    t.add_row("Annual saving", _signed(combo.annual_saving, _fmt_money(combo.annual_saving)))
    t.add_row("Total annual cost", _fmt_money(combo.annual_cost))
    t.add_row("Net annual saving", _signed(combo.net_annual, _fmt_money(combo.net_annual)))
    t.add_row(
        f"Net saving over {_fmt_years(params.term_years)}",
        _signed(combo.net_term, _fmt_money(combo.net_term)),
    )
    return t


def display_combo(session: BonusSession) -> None:
    console.print(_combo_table("Selected Combination", session.combo(), session))


def display_undo_banner(session: BonusSession) -> None:
    removed = session.pending_undo
    if removed is not None:
        console.print(
            f"[yellow]Removed \"{escape(removed.name)}\". Type [bold]undo[/bold] to restore it.[/yellow]"
        )


def display_search(result: ComboSearchResult, session: BonusSession) -> None:
    chosen = set(result.bonus_ids)
    names = [escape(b.name) for b in session.bonuses if b.id in chosen]
    console.print(Panel(
        f"[bold green]Best combination[/bold green] — objective: {result.objective} "
        f"({result.evaluated} combinations tried)\n"
        + ("\n".join(f"  • {n}" for n in names) if names else "  (no bonus is worth taking)"),
        expand=False,
    ))
    console.print(_combo_table("Best Combination", result.projection, session))


def _diagnose(session: BonusSession) -> str:
    """Name the loan parameter most likely to blame for a failed computation."""
    params = session.params
    if params.capital < ZERO:
        return f"capital is negative ({_fmt_money(params.capital)}); set it to 0 or more"
    return "check capital, rate, years and bonus discounts for out-of-range values"


def render(session: BonusSession) -> None:
    """Print every view; a payment that cannot be computed is reported, not raised."""
    try:
        display_summary(session)
        display_bonuses(session)
        display_combo(session)
    except (ValueError, ArithmeticError) as exc:
        logger.debug("Payment computation failed", exc_info=exc)
        err_console.print(f"Cannot compute payments: {_diagnose(session)}.")
    display_undo_banner(session)


# ──────────────────────────────────────────────────────────────────────────────
# Command handlers
# ──────────────────────────────────────────────────────────────────────────────

_HELP = (
    "[bold]Actions:[/bold] "
    "[cyan]show[/cyan] · [cyan]set <capital|years|rate|cap> <value>[/cyan] · "
    "[cyan]edit <id> <name|discount|cost> <value>[/cyan] · [cyan]toggle <id>[/cyan] · "
    "[cyan]add[/cyan] · [cyan]remove <id>[/cyan] · [cyan]undo[/cyan] · [cyan]reset[/cyan] · "
    "[cyan]best [net_annual|net_term][/cyan] · [cyan]help[/cyan] · [cyan]exit[/cyan]"
)

_PARAM_FIELDS = ("capital", "years", "rate", "cap")
_BONUS_FIELDS = ("name", "discount", "cost")


def _apply_param(session: BonusSession, field: str, raw: str) -> bool:
    if field == "capital":
        session.set_capital(parse_number(raw))
    elif field == "years":
        session.set_term_years(parse_term_years(raw))
    elif field == "rate":
        session.set_base_rate(parse_number(raw))
    elif field == "cap":
        session.set_max_combo_discount(parse_number(raw))
    else:
        err_console.print(f"  Unknown parameter '{field}'. Use one of: {', '.join(_PARAM_FIELDS)}.")
        return False
    return True


def _apply_bonus_edit(session: BonusSession, bonus_id: str, field: str, raw: str) -> bool:
    if field == "name":
        updated = session.update(bonus_id, name=raw)
    elif field == "discount":
        updated = session.update(bonus_id, discount_pct=parse_number(raw))
    elif field == "cost":
        updated = session.update(bonus_id, annual_cost=parse_number(raw))
    else:
        err_console.print(f"  Unknown bonus field '{field}'. Use one of: {', '.join(_BONUS_FIELDS)}.")
        return False
    if updated is None:
        err_console.print(f"  Unknown bonus '{bonus_id}'.")
        return False
    return True


def _run_search(session: BonusSession, objective: str) -> None:
    try:
        result = best_combination(session.params, session.bonuses, objective)
    except ValueError as exc:
        reason = _diagnose(session) if session.params.capital < ZERO else exc
        err_console.print(f"Search failed: {reason}")
        return
    except ArithmeticError:
        err_console.print(f"Search failed: {_diagnose(session)}.")
        return

    display_search(result, session)
    confirm = console.input("[bold]Apply this combination? (y/n): [/bold]").strip().lower()
    if confirm == "y":
        session.apply_combination(result.bonus_ids)
        console.print("  [green]Combination applied.[/green]")
        render(session)
    else:
        console.print("  Keeping current selection.")


def handle_command(session: BonusSession, line: str) -> bool:
    """Execute one command line.  Returns False when the session should end."""
    parts = line.split(maxsplit=3)
    if not parts:
        return True
    action = parts[0].lower()
    args = parts[1:]

    if action in ("exit", "quit", "q"):
        console.print("Goodbye.")
        return False

    elif action == "help":
        console.print(_HELP)

    elif action == "show":
        render(session)

    elif action == "set":
        if len(args) < 2:
            err_console.print("  Usage: set <capital|years|rate|cap> <value>")
            return True
        # "set capital 270 000" keeps the spaces for the parser to strip
        raw = " ".join(args[1:])
        if _apply_param(session, args[0].lower(), raw):
            render(session)

    elif action == "edit":
        if len(args) < 3:
            err_console.print("  Usage: edit <id> <name|discount|cost> <value>")
            return True
        bonus_id, field, raw = args
        if _apply_bonus_edit(session, bonus_id, field.lower(), raw):
            render(session)

    elif action == "toggle":
        if not args:
            err_console.print("  Usage: toggle <id>")
        elif session.toggle(args[0]) is None:
            err_console.print(f"  Unknown bonus '{args[0]}'.")
        else:
            render(session)

    elif action == "add":
        bonus = session.add()
        console.print(f"  [green]Added {bonus.id}[/green]")
        render(session)

    elif action == "remove":
        if not args:
            err_console.print("  Usage: remove <id>")
        elif session.remove(args[0]) is None:
            err_console.print(f"  Unknown bonus '{args[0]}'.")
        else:
            console.print(f"  Removed {args[0]}")
            render(session)

    elif action == "undo":
        restored = session.undo()
        if restored is None:
            err_console.print("  Nothing to undo.")
        else:
            console.print(f"  [green]Restored {restored.id}[/green]")
            render(session)

    elif action == "reset":
        session.reset_to_defaults()
        console.print("  [green]Defaults restored.[/green]")
        render(session)

    elif action == "best":
        objective = args[0].lower() if args else DEFAULT_OBJECTIVE
        if objective not in VALID_OBJECTIVES:
            err_console.print(f"  Unknown objective '{objective}'. Use one of: {', '.join(sorted(VALID_OBJECTIVES))}.")
            return True
        _run_search(session, objective)

    else:
        err_console.print(f"  Unknown action '{action}'.")

    return True


# ──────────────────────────────────────────────────────────────────────────────
# Interactive loop
# ──────────────────────────────────────────────────────────────────────────────

def interactive_loop(session: BonusSession) -> None:
    render(session)
    console.print()
    console.print(_HELP)

    while True:
        console.print()
        line = console.input("[bold]> [/bold]").strip()
        # Time passed while waiting for input: expire a stale undo first
        session.timers.run_due()
        if not handle_command(session, line):
            break


# ──────────────────────────────────────────────────────────────────────────────
# Click entry point
# ──────────────────────────────────────────────────────────────────────────────

@click.command()
@click.option("--capital", type=str, default=None, help="Loan capital (default: 270000)")
@click.option("--years", type=str, default=None, help="Loan term in years (default: 30)")
@click.option("--rate", type=str, default=None, help="Base annual rate in %, e.g. 2,7 (default: 2.7)")
@click.option("--max-discount", type=str, default=None, help="Cap on the combined discount in points (default: 0.85)")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log debug output to stderr")
def main(
    capital: Optional[str],
    years: Optional[str],
    rate: Optional[str],
    max_discount: Optional[str],
    verbose: bool,
) -> None:
    """Mortgage Bonus Calculator: compare what each bank bonus really saves."""
    setup_logging(verbose)
    console.print(Panel("[bold blue]Mortgage Bonus Calculator[/bold blue]", expand=False))

    session = BonusSession()
    if capital is not None:
        session.set_capital(parse_number(capital))
    if years is not None:
        session.set_term_years(parse_term_years(years))
    if rate is not None:
        session.set_base_rate(parse_number(rate))
    if max_discount is not None:
        session.set_max_combo_discount(parse_number(max_discount))
    logger.debug("Starting session with %s", session.params)

    try:
        interactive_loop(session)
    except (KeyboardInterrupt, EOFError):
        console.print("\nSession ended.")
    finally:
        session.close()
