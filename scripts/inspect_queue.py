"""List the next reminders due, read directly from Redis.

Entries that fail to deserialize are flagged; the dispatcher will drop them
when they come due.
"""

import argparse
from datetime import datetime, timezone

import redis

from remindme.common.errors import CorruptPayloadError
from remindme.reminders.models import deserialize


def main() -> None:
    """CLI entrypoint for queue inspection."""

    parser = argparse.ArgumentParser(description="Inspect pending reminders.")
    parser.add_argument("--redis-url", default="redis://localhost:6379/0")
    parser.add_argument("--key", default="reminder_queue")
    parser.add_argument("--limit", type=int, default=20)
    args = parser.parse_args()

    rdb = redis.Redis.from_url(args.redis_url, decode_responses=False)
    depth = rdb.zcard(args.key)
    rows = rdb.zrange(args.key, 0, max(0, args.limit - 1), withscores=True)

    print(f"queue={args.key} depth={depth}")
    for payload, score in rows:
        due = datetime.fromtimestamp(int(score), tz=timezone.utc).isoformat()
        try:
            reminder = deserialize(payload)
        except CorruptPayloadError:
            print(f"{due}  CORRUPT {payload[:80]!r}")
            continue
        print(f"{due}  recipient={reminder.recipient} body={reminder.body!r}")


if __name__ == "__main__":
    main()
