"""
Main entry point for the ROAS optimizer.
"""
import sys
import argparse

from roas_optimizer.config.settings import settings
from roas_optimizer.utils.logging import setup_logging
from roas_optimizer.utils.exceptions import ROASOptimizerException


def create_parser():
    """Create command-line argument parser."""
    parser = argparse.ArgumentParser(description="ROAS Spend Optimizer")
    parser.add_argument(
        "--log-level",
        default=settings.logging.level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set logging level"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=settings.api.host, help="Host to bind the server to")
    serve.add_argument("--port", type=int, default=settings.api.port, help="Port to bind the server to")
    serve.add_argument("--reload", action="store_true", default=settings.api.reload,
                       help="Enable auto-reload on code changes")

    optimize = subparsers.add_parser("optimize", help="Optimize spend from a CSV file")
    optimize.add_argument("csv", help="Path to a CSV with date, spend, ad_sales (and asin) columns")
    optimize.add_argument("--mode", choices=["single", "portfolio"], default="single")
    optimize.add_argument("--gross-margin", type=float, default=settings.defaults.gross_margin_pct,
                          help="Gross margin %%")
    optimize.add_argument("--required-net", type=float, default=settings.defaults.required_net_pct,
                          help="Required net margin %%")
    optimize.add_argument("--current-spend", type=float, default=settings.defaults.current_spend,
                          help="Current daily spend (single mode)")
    optimize.add_argument("--seasonality", choices=["none", "weekly", "monthly"],
                          default=settings.defaults.seasonality)
    optimize.add_argument("--recency", type=float, default=settings.defaults.recency,
                          help="Recency preference between 0 and 1")
    optimize.add_argument("--output", help="Write portfolio recommendations to this CSV")

    return parser


def run_server(args):
    import uvicorn

    print(f"Starting ROAS optimizer API server on {args.host}:{args.port}")
    print(f"Environment: {settings.env.value}")
    uvicorn.run(
        "roas_optimizer.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level.lower()
    )


def run_optimize(args):
    from roas_optimizer.data.processor import DataProcessor
    from roas_optimizer.data.export import rows_to_frame, export_portfolio_csv
    from roas_optimizer.model.observations import MarginConfig, RunSettings
    from roas_optimizer.optimization.optimizer import optimize_single
    from roas_optimizer.optimization.portfolio import optimize_portfolio, summarize_actions

    observations, warnings = DataProcessor(args.mode).load_csv(args.csv)
    for issue in warnings:
        print(f"Warning: {issue.message}")

    margin_config = MarginConfig.from_percentages(args.gross_margin, args.required_net)
    run_settings = RunSettings(
        current_spend=args.current_spend,
        seasonality=args.seasonality,
        recency=args.recency
    )

    print(f"Contribution margin: {margin_config.contribution_margin_pct:.1f}%")

    if args.mode == "single":
        result = optimize_single(observations, margin_config, run_settings)
        print(f"Required mROAS: {margin_config.required_marginal_return:.2f}x")
        for key, value in result.to_dict().items():
            if value is not None:
                print(f"{key}: {value}")
        return

    rows = optimize_portfolio(observations, margin_config, run_settings)
    print(rows_to_frame(rows).to_string(index=False))
    print(", ".join(f"{action}: {count}" for action, count in summarize_actions(rows).items()))
    if args.output:
        export_portfolio_csv(rows, args.output)
        print(f"Recommendations written to {args.output}")


def main():
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    setup_logging(args.log_level)

    try:
        if args.command == "serve":
            run_server(args)
        else:
            run_optimize(args)
    except KeyboardInterrupt:
        print("\nShutting down...")
        sys.exit(0)
    except ROASOptimizerException as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
