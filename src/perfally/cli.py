"""Typer CLI — ``perfally validate``, ``audit``, ``plan`` and ``report`` commands."""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from urllib.parse import urlparse

import httpx
import typer
from dotenv import load_dotenv
from rich.console import Console

from perfally.config import load_config, load_report_request, load_snapshot
from perfally.errors import AuditServiceError
from perfally.grading import GRADE_LABELS, grade_score, site_health
from perfally.plan_limits import PLAN_TIERS, get_limits
from perfally.schemas.config import ReportConfig

# Load .env file from project root (if it exists)
load_dotenv()

app = typer.Typer(
    name="perfally",
    help="PerfAlly — audit pages with PageSpeed Insights and produce branded performance reports.",
    no_args_is_help=True,
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )
    # httpx logs every HTTP request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _load_config_or_exit(config: Path | None) -> ReportConfig:
    if config is None:
        return ReportConfig()
    try:
        return load_config(config)
    except Exception as exc:
        console.print(f"[red]Config validation failed:[/] {exc}")
        raise typer.Exit(code=1)


def _check_tier(plan: str) -> str:
    if plan not in PLAN_TIERS:
        console.print(f"[red]Unknown plan tier:[/] {plan} (expected one of {', '.join(PLAN_TIERS)})")
        raise typer.Exit(code=1)
    return plan


def _snapshot_filename(url: str) -> str:
    parsed = urlparse(url)
    slug = re.sub(r"[^a-zA-Z0-9]+", "-", f"{parsed.netloc}{parsed.path}").strip("-").lower()
    return f"{slug or 'page'}.json"


@app.command()
def validate(
    config: Path = typer.Option(..., "--config", "-c", help="Path to perfally.yml"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Validate a configuration file."""
    _setup_logging(verbose)
    cfg = _load_config_or_exit(config)

    console.print("[green]Config is valid![/]\n")
    console.print(f"  Strategy:      {cfg.strategy}")
    console.print(f"  PSI timeout:   {cfg.psi_timeout:g}s")
    console.print(f"  Models:        {cfg.models.fast} (free/starter), {cfg.models.quality} (pro/agency)")
    console.print(f"  Brand:         {cfg.brand.name} · {cfg.brand.contact} · {cfg.brand.accent_color}")
    console.print(f"  Output dir:    {cfg.output_directory}")
    console.print(f"  PageSpeed key: {'set' if cfg.pagespeed_api_key else '(not set)'}")
    console.print(f"  OpenAI key:    {'set' if cfg.openai_api_key else '(not set, AI plans disabled)'}")


@app.command()
def audit(
    url: list[str] = typer.Option(..., "--url", "-u", help="Page URL to audit (repeatable)."),
    config: Path = typer.Option(None, "--config", "-c", help="Path to perfally.yml"),
    strategy: str = typer.Option(None, "--strategy", "-s", help="mobile or desktop (default from config)."),
    plan: str = typer.Option("free", "--plan", "-p", help="Plan tier: free, starter, pro or agency."),
    ai_used: int = typer.Option(0, "--ai-used", help="AI action plans already used this month."),
    output: Path = typer.Option(None, "--output", "-o", help="Directory for snapshot JSON files (default from config)."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Use a canned AI plan (no model API calls)."),
) -> None:
    """Audit one or more pages and save each result as a snapshot JSON file.

    Example:

        perfally audit --url https://example.com --url https://example.com/pricing --plan pro
    """
    _setup_logging(verbose)
    cfg = _load_config_or_exit(config)
    plan = _check_tier(plan)
    strategy = strategy or cfg.strategy
    if strategy not in ("mobile", "desktop"):
        console.print(f"[red]Invalid strategy:[/] {strategy}")
        raise typer.Exit(code=1)

    out_dir = output or Path(cfg.output_directory)
    if dry_run:
        console.print("[yellow]DRY-RUN mode — AI plans are canned, no model API calls.[/]\n")

    failures = asyncio.run(_run_audits(cfg, url, strategy, plan, ai_used, out_dir, dry_run=dry_run))
    if failures:
        raise typer.Exit(code=1)


async def _run_audits(
    cfg: ReportConfig,
    urls: list[str],
    strategy: str,
    plan: str,
    ai_used: int,
    out_dir: Path,
    *,
    dry_run: bool = False,
) -> int:
    from perfally.planners.ai_plan import AIActionPlanner
    from perfally.runner import run_page_audit
    from perfally.shared.llm_client import DryRunClient, build_llm_client
    from perfally.shared.pagespeed_client import PageSpeedClient
    from perfally.shared.progress import AuditProgress

    if dry_run:
        client = DryRunClient()
    else:
        client = build_llm_client(cfg.openai_api_key, timeout=cfg.llm_timeout)
    planner = AIActionPlanner(client, cfg)

    out_dir.mkdir(parents=True, exist_ok=True)
    failures = 0
    async with httpx.AsyncClient(timeout=cfg.psi_timeout) as http:
        pagespeed = PageSpeedClient(cfg.pagespeed_api_key, http_client=http, timeout=cfg.psi_timeout)
        with AuditProgress() as progress:
            # Sequential: ai_used advances with each generated plan
            for page_url in urls:
                progress.start_page(page_url)
                try:
                    snapshot = await run_page_audit(
                        page_url, strategy, plan,
                        pagespeed=pagespeed, planner=planner, ai_plans_used=ai_used,
                    )
                except AuditServiceError as exc:
                    failures += 1
                    status = f" (HTTP {exc.status_code})" if exc.status_code else ""
                    progress.fail_page(page_url, f"{exc.message}{status}")
                    continue
                if snapshot.ai_action_plan:
                    ai_used += 1
                path = out_dir / _snapshot_filename(page_url)
                path.write_text(snapshot.model_dump_json(indent=2))
                health = site_health(snapshot.perf_score, snapshot.seo_score, snapshot.accessibility_score)
                plan_note = "AI plan" if snapshot.ai_action_plan else "static plan"
                progress.finish_page(page_url, f"health {health} · perf {snapshot.perf_score} · {plan_note} → {path}")
    return failures


@app.command("plan")
def show_plan(
    audit_file: Path = typer.Option(..., "--audit", "-a", help="Snapshot JSON written by `perfally audit`."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Print the action plan a report would show for a stored audit."""
    from perfally.planners.chain import resolve_plan

    _setup_logging(verbose)
    try:
        snapshot = load_snapshot(audit_file)
    except Exception as exc:
        console.print(f"[red]Could not load audit:[/] {exc}")
        raise typer.Exit(code=1)

    health = site_health(snapshot.perf_score, snapshot.seo_score, snapshot.accessibility_score)
    console.print(f"[bold]Site health:[/] {health} ({GRADE_LABELS[grade_score(health)]})\n")

    resolved = resolve_plan(snapshot, snapshot.payload())
    if resolved.kind == "all-clear":
        console.print("[green]No critical issues found.[/]")
        return

    console.print(f"[bold]── Action Plan{' (AI)' if resolved.kind == 'ai' else ''} ──[/]\n")
    for i, item in enumerate(resolved.ai_items, 1):
        console.print(f"[bold cyan]{i}. {item.title}[/] [dim]{item.difficulty}[/]")
        console.print(f"   {item.action}")
        for step in item.steps:
            console.print(f"   - {step}")
        if item.stack_tip:
            console.print(f"   [yellow]Tip:[/] {item.stack_tip}")
    for i, action in enumerate(resolved.static_items, 1):
        savings = f" [green]saves {action.savings}[/]" if action.savings else ""
        console.print(f"[bold cyan]{i}. {action.title}[/] [dim]{action.impact}[/]{savings}")
        console.print(f"   {action.fix}")


@app.command()
def report(
    request: Path = typer.Option(..., "--request", "-r", help="Report request YAML (project, pages, branding)."),
    output: Path = typer.Option(Path("report.pdf"), "--output", "-o", help="PDF file to write."),
    config: Path = typer.Option(None, "--config", "-c", help="Path to perfally.yml"),
    plan: str = typer.Option("pro", "--plan", "-p", help="Plan tier of the account the report is for."),
    markdown: Path = typer.Option(None, "--markdown", help="Also write a Markdown summary here."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Render a branded PDF report from stored audits.

    Example:

        perfally report --request report.yml --output acme.pdf --plan agency
    """
    from perfally.output.markdown import render_markdown_report
    from perfally.output.pdf_report import render_report

    _setup_logging(verbose)
    cfg = _load_config_or_exit(config)
    plan = _check_tier(plan)
    limits = get_limits(plan)
    if not limits.pdf_reports:
        console.print(f"[red]PDF reports are not included in the {plan} plan.[/]")
        raise typer.Exit(code=1)

    try:
        req = load_report_request(request)
    except Exception as exc:
        console.print(f"[red]Report request is invalid:[/] {exc}")
        raise typer.Exit(code=1)

    branding = req.branding
    if branding is not None and not limits.branding:
        console.print(f"[yellow]Branding ignored: white-label reports need the agency plan (got {plan}).[/]")
        branding = None

    pdf = render_report(req.project, req.pages, branding, config=cfg)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(pdf)
    console.print(f"[green]PDF report written to:[/] {output}")

    if markdown:
        markdown.write_text(render_markdown_report(req.project, req.pages))
        console.print(f"[green]Markdown report written to:[/] {markdown}")
