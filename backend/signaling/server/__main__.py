"""Run the signaling server: python -m signaling.server"""

import uvicorn

from signaling.server.settings import SignalingServerSettings


def main() -> None:  # pragma: no cover
    settings = SignalingServerSettings()
    uvicorn.run(
        "signaling.server.app:get_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":  # pragma: no cover
    main()
