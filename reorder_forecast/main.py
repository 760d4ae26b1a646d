import argparse
import sys
from dataclasses import fields, replace

from reorder_forecast.batch.forecast_job import run_forecast_job
from reorder_forecast.config import Config, ForecastSettings, load_settings
from reorder_forecast.core.unification import ProductUnifier
from reorder_forecast.exceptions import ReorderForecastError
from reorder_forecast.logging_setup import configure_logging, get_logger, log_exception
from reorder_forecast.services.analysis_service import OrderAnalyzer
from reorder_forecast.services.ingestion_service import ExcelOrderSource
from reorder_forecast.services.mapping_service import MappingService
from reorder_forecast.services.recommendation_service import RecommendationService
from reorder_forecast.services.reporting_service import ReportingService
from reorder_forecast.utils.date_utils import convert_to_datetime

log = get_logger('reorder_forecast.cli')


def init_application(config_path=None):
    """Load configuration and set up logging.

    Returns:
        Tuple of (config, forecast settings)
    """
    config = Config(config_path)
    configure_logging(config.log_config)
    settings = load_settings(config.path)

    log.info("Reorder Forecast initialized")
    log.debug(f"Using configuration file {config.path}")

    return config, settings


def apply_overrides(settings: ForecastSettings, args) -> ForecastSettings:
    """Apply command-line overrides to the loaded settings."""
    overrides = {}
    if getattr(args, 'days', None) is not None:
        overrides['days_ahead'] = args.days
    if getattr(args, 'min_confidence', None) is not None:
        overrides['min_confidence_threshold'] = args.min_confidence

    if not overrides:
        return settings
    return replace(settings, **overrides).validate()


def parse_start_date(value):
    if value is None:
        return None
    return convert_to_datetime(value)


def run_forecast(args, config, settings):
    """Run the forecasting pipeline on a spreadsheet and print the forecasts."""
    storage = config.storage_config
    start_date = parse_start_date(args.start)

    results = run_forecast_job(
        ExcelOrderSource(args.file),
        settings,
        start_date=start_date,
        mapping_path=None if args.no_mapping else storage['mapping_file'],
        forecasts_path=None if args.no_save else storage['forecasts_file'],
    )

    reporting = ReportingService()

    print(f"\nForecasts {results['start_date']:%Y-%m-%d} - {results['end_date']:%Y-%m-%d}:")
    print(reporting.forecast_table(results['forecasts']))
    print(f"\nProducts: {results['product_count']}, forecasts: {results['forecast_count']}")

    if args.batches:
        print("\nOrder batches:")
        print(reporting.batch_table(results['batches']))

    if args.export:
        reporting.export_forecasts_json(results['forecasts'], args.export)
        print(f"\nForecasts exported to {args.export}")

    if args.csv:
        if results['forecasts']:
            reporting.export_forecasts_csv(results['forecasts'], args.csv)
            print(f"\nForecasts exported to {args.csv}")
        else:
            print("\nNo forecasts to export to CSV")

    return 0


def show_products(args, config, settings):
    """Print unified products with their derived metrics."""
    lines = ExcelOrderSource(args.file).load()

    mapping = None
    if not args.no_mapping:
        mapping = MappingService(config.storage_config['mapping_file']).load_database()

    products = ProductUnifier(settings, mapping).unify(lines)
    products = OrderAnalyzer(settings).analyze(products)

    print(ReportingService().product_table(products))
    print(f"\nTotal products: {len(products)}")
    return 0


def show_calendar(args, config, settings):
    """Print the order calendar for the forecast period."""
    start_date = parse_start_date(args.start)

    results = run_forecast_job(
        ExcelOrderSource(args.file),
        settings,
        start_date=start_date,
        mapping_path=config.storage_config['mapping_file'],
    )

    calendar = RecommendationService(settings).create_order_calendar(results['forecasts'])
    print(ReportingService().calendar_table(calendar))
    return 0


def manage_mapping(args, config, settings):
    """List and edit mapping groups."""
    service = MappingService(config.storage_config['mapping_file'])
    database = service.load_database()

    if args.mapping_command == 'list':
        if not database.groups:
            print("No mapping groups")
            return 0
        for group in database.groups:
            print(f"{group.name} [{group.unified_article}]")
            print(f"  Names: {', '.join(group.name_variations) or '-'}")
            print(f"  Articles: {', '.join(group.article_variations) or '-'}")
        return 0

    if args.mapping_command == 'add-group':
        group = service.add_group(database, args.name, args.article, args.primary_name or '')
        service.save_database(database)
        print(f"Added group {group.name} [{group.unified_article}]")
        return 0

    if args.mapping_command == 'remove-group':
        if not service.remove_group(database, args.name):
            print(f"Group not found: {args.name}")
            return 1
        service.save_database(database)
        print(f"Removed group {args.name}")
        return 0

    if args.mapping_command == 'add-variation':
        kind = service.add_variation(database, args.group, args.value)
        service.save_database(database)
        print(f"Added {kind} variation '{args.value}' to {args.group}")
        return 0

    if args.mapping_command == 'remove-variation':
        if not service.remove_variation(database, args.group, args.value):
            print(f"Variation not found: {args.value}")
            return 1
        service.save_database(database)
        print(f"Removed variation '{args.value}' from {args.group}")
        return 0

    return 1


def manage_settings(args, config, settings):
    """Show or change forecast settings."""
    if args.settings_command == 'show':
        for field in fields(ForecastSettings):
            print(f"{field.name} = {getattr(settings, field.name)}")
            if args.verbose:
                print(f"    {ForecastSettings.describe(field.name)}")
        return 0

    if args.settings_command == 'set':
        values = settings.to_dict()
        if args.key not in values:
            print(f"Unknown setting: {args.key}")
            return 1
        values[args.key] = args.value
        config.save_forecast_settings(ForecastSettings.from_mapping(values))
        print(f"{args.key} = {args.value}")
        return 0

    return 1


def build_parser():
    parser = argparse.ArgumentParser(description='Reorder Forecast System')
    parser.add_argument('--config', type=str, default=None,
                        help='Path to the settings file')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Forecast command
    forecast_parser = subparsers.add_parser('forecast', help='Forecast reorders from an order spreadsheet')
    forecast_parser.add_argument('file', help='Excel file with order history')
    forecast_parser.add_argument('--days', type=int, help='Forecast horizon in days')
    forecast_parser.add_argument('--start', type=str, help='Start date (YYYY-MM-DD), today by default')
    forecast_parser.add_argument('--min-confidence', type=float,
                                 help='Hide forecasts below this confidence (%%)')
    forecast_parser.add_argument('--batches', action='store_true',
                                 help='Show orders grouped into batches')
    forecast_parser.add_argument('--export', type=str, help='Export forecasts to a JSON file')
    forecast_parser.add_argument('--csv', type=str, help='Export forecasts to a CSV file')
    forecast_parser.add_argument('--no-save', action='store_true',
                                 help='Do not save forecasts to the forecasts file')
    forecast_parser.add_argument('--no-mapping', action='store_true',
                                 help='Ignore and do not update the saved mapping')

    # Products command
    products_parser = subparsers.add_parser('products', help='Show unified products')
    products_parser.add_argument('file', help='Excel file with order history')
    products_parser.add_argument('--no-mapping', action='store_true',
                                 help='Ignore the saved mapping')

    # Calendar command
    calendar_parser = subparsers.add_parser('calendar', help='Show the order calendar')
    calendar_parser.add_argument('file', help='Excel file with order history')
    calendar_parser.add_argument('--days', type=int, help='Forecast horizon in days')
    calendar_parser.add_argument('--start', type=str, help='Start date (YYYY-MM-DD), today by default')

    # Mapping command
    mapping_parser = subparsers.add_parser('mapping', help='Manage the product mapping')
    mapping_subparsers = mapping_parser.add_subparsers(dest='mapping_command', required=True)

    mapping_subparsers.add_parser('list', help='List mapping groups')

    add_group_parser = mapping_subparsers.add_parser('add-group', help='Add a mapping group')
    add_group_parser.add_argument('name', help='Group name')
    add_group_parser.add_argument('article', help='Unified article code')
    add_group_parser.add_argument('--primary-name', type=str, help='Display name')

    remove_group_parser = mapping_subparsers.add_parser('remove-group', help='Remove a mapping group')
    remove_group_parser.add_argument('name', help='Group name')

    add_variation_parser = mapping_subparsers.add_parser('add-variation', help='Add a name or article variation')
    add_variation_parser.add_argument('group', help='Group name')
    add_variation_parser.add_argument('value', help='Product name or article code')

    remove_variation_parser = mapping_subparsers.add_parser('remove-variation', help='Remove a variation')
    remove_variation_parser.add_argument('group', help='Group name')
    remove_variation_parser.add_argument('value', help='Product name or article code')

    # Settings command
    settings_parser = subparsers.add_parser('settings', help='Show or change forecast settings')
    settings_subparsers = settings_parser.add_subparsers(dest='settings_command', required=True)

    show_parser = settings_subparsers.add_parser('show', help='Show current settings')
    show_parser.add_argument('--verbose', '-v', action='store_true',
                             help='Include parameter descriptions')

    set_parser = settings_subparsers.add_parser('set', help='Change a setting')
    set_parser.add_argument('key', help='Setting name')
    set_parser.add_argument('value', help='New value')

    return parser


COMMANDS = {
    'forecast': run_forecast,
    'products': show_products,
    'calendar': show_calendar,
    'mapping': manage_mapping,
    'settings': manage_settings,
}


def main(argv=None):
    """Main application entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        config, settings = init_application(args.config)
        settings = apply_overrides(settings, args)
        return COMMANDS[args.command](args, config, settings)
    except ReorderForecastError as e:
        log_exception('reorder_forecast.cli', e, f"Command '{args.command}' failed")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        log.error(f"Invalid input: {str(e)}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
