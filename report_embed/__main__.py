"""
Report Embed Entry Point
Runs the embed handshake once against the headless surface.

Fetches the access token, embed URL and embed token with the configured
client credentials, embeds the report, simulates the loaded/rendered
events and prints what ended up in the report container.
"""

import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

from .config import create_settings_from_env
from .orchestrator import EmbedOrchestrator, EmbedState
from .surface import HeadlessSurface, ReportContainer

# Load environment variables
load_dotenv()

logger = logging.getLogger("report_embed")


async def run() -> int:
    """Mount, wait for the handshake, dry-run the lifecycle events, unmount."""
    settings = create_settings_from_env()
    container = ReportContainer()
    surface = HeadlessSurface()
    orchestrator = EmbedOrchestrator(settings, container, surface)

    logger.info("Starting report embed handshake...")
    logger.info(f"  Workspace: {settings.workspace_id or '<unset>'}")
    logger.info(f"  Report:    {settings.report_id or '<unset>'}")
    logger.info(f"  Dataset:   {settings.dataset_id or '<unset>'}")

    try:
        orchestrator.mount()
        await orchestrator.settle()
        state = orchestrator.render()

        if state is EmbedState.EMBEDDED:
            handle = surface.handle_for(container)
            handle.emit("loaded")
            handle.emit("rendered")
            await orchestrator.settle()

            config = orchestrator.report.config
            logger.info("=" * 70)
            logger.info("✓ REPORT EMBEDDED")
            logger.info(f"  Embed URL: {config['embedUrl']}")
            logger.info(f"  Token:     {config['accessToken'][:30]}...")
            logger.info(f"  Filters:   {len(handle.filters)} applied")
            logger.info("=" * 70)
            return 0

        logger.error("✗ Report could not be embedded:")
        for line in container.lines:
            logger.error(f"  {line}")
        return 1
    finally:
        orchestrator.unmount()


def main() -> None:
    """Main entry point for the report embed dry run."""
    logging.basicConfig(
        level=os.getenv('LOG_LEVEL', 'INFO').upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        exit_code = asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Report embed stopped by user")
        exit_code = 130
    except Exception as e:
        logger.error(f"Error running report embed: {e}", exc_info=True)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
