"""CLI bootstrap for freelance-billing."""

from uuid import UUID

import typer

from freelance_billing.domain.errors import DomainError
from freelance_billing.domain.money import format_hours, format_money

app = typer.Typer(help="CLI for freelancer monthly closures.")
USER_ID_OPTION = typer.Option(..., "--user-id", help="Owner of the closure.")
CLOSURE_ID_OPTION = typer.Option(..., "--closure-id", help="Closure to report.")


@app.command("healthcheck")
def healthcheck() -> None:
    """Verify that the CLI entrypoint is available."""
    typer.echo("freelance-billing is ready")


@app.command("closure-report")
def closure_report(
    user_id: UUID = USER_ID_OPTION,
    closure_id: UUID = CLOSURE_ID_OPTION,
) -> None:
    """Print client rows, expenses and totals of one monthly closure."""
    from freelance_billing.api.dependencies import build_monthly_closure_service
    from freelance_billing.db.session import SessionFactory

    with SessionFactory() as session:
        service = build_monthly_closure_service(session)
        try:
            result = service.get_with_totals(user_id=user_id, closure_id=closure_id)
        except DomainError as exc:
            typer.echo(f"{exc.code}: {exc.message}", err=True)
            raise typer.Exit(code=1) from exc

        closure = result.closure
        typer.echo(
            f"Closure {closure.year:04d}-{closure.month:02d} ({closure.status.value})"
        )
        typer.echo(
            f"Rate: {format_money(closure.hourly_rate)} | "
            f"Tax: {format_money(closure.tax_percentage)}%"
        )
        for row in result.clients:
            typer.echo(
                f"  {row.client.name}: {format_hours(row.total_hours)}h | "
                f"gross {format_money(row.gross_amount)} | "
                f"tax {format_money(row.tax_amount)} | "
                f"net {format_money(row.net_amount)}"
            )
        for expense in result.expenses:
            typer.echo(f"  - {expense.name}: {format_money(expense.amount)}")

        totals = result.totals
        typer.echo(
            f"Hours: {format_hours(totals.total_hours)} | "
            f"Net: {format_money(totals.net_amount)} | "
            f"Expenses: {format_money(totals.total_expenses)} | "
            f"Final: {format_money(totals.final_amount)}"
        )
        if not result.flags.allows_close:
            typer.echo(
                f"Pending tasks: {result.flags.pending_tasks_count} | "
                f"Tasks without hours: {result.flags.tasks_without_hours_count}"
            )


@app.command("mcp-server")
def mcp_server() -> None:
    """Run the MCP tool server over stdio."""
    from freelance_billing.mcp.server import create_mcp_server

    create_mcp_server().run()


def main() -> None:
    """Run the freelance-billing CLI application."""
    app()


if __name__ == "__main__":
    main()
