"""
FairWatch Main Entry Point

Runs the monitoring scheduler in the foreground: dashboards are refreshed
and expired records purged on the configured interval until interrupted.
"""

import sys
import time


def main() -> int:
    """
    Main entry point for the FairWatch monitoring daemon.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    scheduler = None
    try:
        # Initialize logging first
        from fairwatch.utils.logger import setup_logging, log

        setup_logging()
        log.info("Starting FairWatch monitoring...")

        # Load configuration
        from fairwatch.utils.config import get_settings

        settings = get_settings()
        log.info(f"Environment: {settings.environment}")
        log.info(f"Storage backend: {settings.storage_backend}")

        from fairwatch.core.monitoring import MonitoringScheduler, build_monitoring_service

        service = build_monitoring_service(settings)
        service.ensure_indexes()

        scheduler = MonitoringScheduler(
            service,
            interval_seconds=settings.monitoring.dashboard_refresh_hours * 3600,
        )
        # first tick immediately so dashboards are warm
        scheduler.run_once()
        scheduler.start()

        while scheduler.is_running:
            time.sleep(1)
        return 0

    except KeyboardInterrupt:
        print("\nMonitoring interrupted by user.")
        return 130
    except Exception as e:
        print(f"Fatal error: {e}")
        import traceback

        traceback.print_exc()
        return 1
    finally:
        if scheduler is not None:
            scheduler.stop()


if __name__ == "__main__":
    sys.exit(main())
