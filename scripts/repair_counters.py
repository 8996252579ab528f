from __future__ import annotations

import argparse

from socialapp.core.config import build_settings
from socialapp.core.logging_config import configure_logging
from socialapp.database import create_db_engine, create_session_factory
from socialapp.services.engagement import recount_counters


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Recompute post like/retweet/comment counters from the likes, retweets and comments tables."
    )
    parser.add_argument(
        "--post-id",
        type=int,
        action="append",
        dest="post_ids",
        help="Only repair this post (repeatable). Default: every post.",
    )
    args = parser.parse_args()

    settings = build_settings()
    configure_logging(
        service="socialapp-repair",
        environment=settings.ENV,
        log_level=settings.LOG_LEVEL,
        json_output=settings.LOG_JSON,
    )
    engine = create_db_engine(settings)
    try:
        with create_session_factory(engine)() as session:
            repaired = recount_counters(session, args.post_ids)
    finally:
        engine.dispose()

    print(f"repaired {repaired} post(s)")


if __name__ == "__main__":
    main()
