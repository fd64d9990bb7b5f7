import signal

import uvicorn

from fallback_bot.config import settings
from fallback_bot.main import app


class FallbackBotServer(uvicorn.Server):
    """uvicorn server that remembers which signal stopped it."""

    def handle_exit(self, sig, frame) -> None:
        try:
            app.state.shutdown_reason = signal.Signals(sig).name
        except ValueError:
            app.state.shutdown_reason = str(sig)
        super().handle_exit(sig, frame)


def main() -> None:
    # log_config=None keeps the JSON handlers installed by setup_logging()
    config = uvicorn.Config(app, host=settings.host, port=settings.port, log_config=None)
    FallbackBotServer(config).run()


if __name__ == "__main__":
    main()
