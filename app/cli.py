"""
Flask CLI commands for the incentive batch jobs:

    flask incentives rank 2026 3
    flask incentives recalc-metrics 2026 3
    flask incentives expire-punishments
    flask incentives expire-badges
"""
import click
from flask.cli import AppGroup

from app.errors import IncentiveError
from app.services import get_engines

incentives_cli = AppGroup('incentives', help='Incentive batch jobs.')


@incentives_cli.command('rank')
@click.argument('year', type=int)
@click.argument('month', type=int)
def rank(year, month):
    """Rank every stored snapshot of a month."""
    try:
        result = get_engines().ranking.calculate_monthly_ranking(year, month)
    except IncentiveError as e:
        raise click.ClickException(e.message)
    click.echo("Ranked {} cleaners for {:02d}/{} (top {}).".format(
        result['total_cleaners'], month, year, result['top_percentile_count']))
    for row in result['ranking'][:result['top_percentile_count']]:
        click.echo("  #{} {} {:.1f}".format(row['ranking'], row['cleaner']['name'], row['agility_score']))


@incentives_cli.command('recalc-metrics')
@click.argument('year', type=int)
@click.argument('month', type=int)
def recalc_metrics(year, month):
    """Recompute and store every cleaner's snapshot for a month."""
    try:
        saved = get_engines().agility.save_all_monthly_metrics(year, month)
    except IncentiveError as e:
        raise click.ClickException(e.message)
    click.echo("Saved {} metric snapshots for {:02d}/{}.".format(saved, month, year))


@incentives_cli.command('expire-punishments')
def expire_punishments():
    """Expire punishments whose block has ended."""
    count = get_engines().punishment.expire_punishments()
    click.echo("Expired {} punishments.".format(count))


@incentives_cli.command('expire-badges')
def expire_badges():
    """Clear TOP CLEANER badges past their 30 days."""
    count = get_engines().bonus.expire_top_cleaner_badges()
    click.echo("Expired {} badges.".format(count))
