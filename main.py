"""
AuthPortal Desktop Application Entry Point.

Bootstraps the entire dependency graph via constructor injection,
starts the background event loop that owns the auth core, and launches
the CustomTkinter GUI.  Every subsystem is wired here; there are no module-level
globals.

Usage::

    python main.py                                  # normal start
    python main.py "authportal://login#access_token=...&type=recovery"
"""

from __future__ import annotations

import asyncio
import sys
import traceback

from authportal.config import get_config
from authportal.connection import SupabaseConnection
from authportal.logger import StructuredLogger, get_logger
from authportal.navigation import LaunchLocator
from authportal.runtime import AsyncRunner
from authportal.services import ServiceContainer, create_services
from authportal.ui.app_shell import AppShell


async def _start_session(services: ServiceContainer) -> None:
    """Open provider subscriptions and resolve the initial state."""
    store = services["session_store"]
    controller = services["view_controller"]
    store.start()
    controller.attach()
    # A recovery link in the launch URL preempts the restored session.
    await controller.restore_from_location()
    await store.refresh()


async def _shutdown(services: ServiceContainer) -> None:
    services["view_controller"].close()
    services["session_store"].close()
    await services["auth_service"].wait_for_background()


def main() -> None:
    """Application entry point: wire dependencies and launch the GUI."""
    logger: StructuredLogger = get_logger("main")
    logger.info("Starting AuthPortal...")

    # ------------------------------------------------------------------
    # 1. Configuration (from .env / environment variables)
    # ------------------------------------------------------------------
    config = get_config()

    # ------------------------------------------------------------------
    # 2. Background event loop (owns every auth component)
    # ------------------------------------------------------------------
    runner = AsyncRunner(logger=get_logger("runtime"))
    runner.start()

    # ------------------------------------------------------------------
    # 3. Provider connection (offline when credentials are missing)
    # ------------------------------------------------------------------
    connection = SupabaseConnection(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        logger=StructuredLogger(name="connection"),
    )
    online = asyncio.run_coroutine_threadsafe(connection.connect(), runner.loop).result()
    logger.info("Provider connection %s.", "online" if online else "offline")

    # ------------------------------------------------------------------
    # 4. Navigation locator (launch URL from argv or environment)
    # ------------------------------------------------------------------
    locator = LaunchLocator.from_environment(sys.argv, logger=get_logger("navigation"))

    # ------------------------------------------------------------------
    # 5. Service Container (single composition root)
    # ------------------------------------------------------------------
    services = create_services(config=config, connection=connection, locator=locator)

    # ------------------------------------------------------------------
    # 6. Session + recovery bootstrap
    # ------------------------------------------------------------------
    asyncio.run_coroutine_threadsafe(_start_session(services), runner.loop).result()

    # ------------------------------------------------------------------
    # 7. Launch the GUI (blocks until window closes)
    # ------------------------------------------------------------------
    logger.info("Launching GUI...")
    app = AppShell(runner=runner, services=services, logger=get_logger("ui"))
    try:
        app.mainloop()
    finally:
        # Lets a pending deferred sign-out finish before the loop stops.
        asyncio.run_coroutine_threadsafe(_shutdown(services), runner.loop).result(
            timeout=config.DEFERRED_SIGNOUT_DELAY_S + 5.0,
        )
        runner.stop()
        logger.info("AuthPortal shut down.")


def _show_fatal_error(exc: BaseException) -> None:
    """Display a fatal-error dialog so double-click users get feedback.

    Uses ``tkinter.messagebox`` (stdlib) rather than CustomTkinter so
    the dialog works even when CTk initialisation itself is the thing
    that failed.
    """
    detail = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    try:
        import tkinter
        from tkinter import messagebox

        root = tkinter.Tk()
        root.withdraw()
        messagebox.showerror(
            title="AuthPortal - Fatal Error",
            message=(
                "The application encountered an unexpected error and "
                "cannot continue.\n\n"
                f"{type(exc).__name__}: {exc}"
            ),
            detail=detail,
        )
        root.destroy()
    except Exception:
        # Headless or missing Tcl/Tk.
        sys.stderr.write(f"FATAL: {type(exc).__name__}: {exc}\n{detail}")


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        pass
    except Exception as exc:
        _show_fatal_error(exc)
        sys.exit(1)
