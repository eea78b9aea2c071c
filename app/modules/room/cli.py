from __future__ import annotations

import argparse
import asyncio
import json

from app.core.logging import get_logger, setup_logging
from app.modules.room.models import Difficulty, ScoreSubmission
from app.modules.room.scoring import score_submission
from app.modules.room.session import RoomSession


logger = get_logger(__name__)


async def _watch(room_id: str, username: str) -> None:
    session = RoomSession.from_settings(room_id, username)
    await session.join()
    try:
        while True:
            await asyncio.sleep(5)
            snap = session.snapshot()
            board = ", ".join(f"{p.name}={p.score}" for p in snap.participants)
            logger.info(
                "question %s/%s remaining=%s leaderboard: %s",
                snap.current_index + 1 if snap.total_questions else 0,
                snap.total_questions,
                snap.remaining_display or "-",
                board or "(empty)",
            )
    finally:
        await session.leave()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="code-arena", description="Coding room session tools"
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("score", help="Compute the local score estimate for a submission")
    s.add_argument(
        "--difficulty",
        "-d",
        required=True,
        choices=[d.value.lower() for d in Difficulty],
    )
    s.add_argument("--passed", type=int, required=True, help="Passed test cases")
    s.add_argument("--total", type=int, required=True, help="Total test cases")
    s.add_argument("--wrong-attempts", type=int, default=0)
    s.add_argument("--elapsed-minutes", type=int, default=0)

    w = sub.add_parser("watch", help="Join a room and log its state until interrupted")
    w.add_argument("--room", "-r", required=True, help="Room id")
    w.add_argument("--username", "-u", required=True, help="Display name")

    args = parser.parse_args(argv)
    if args.cmd == "score":
        submission = ScoreSubmission(
            difficulty=Difficulty(args.difficulty),
            passed=args.passed,
            total=args.total,
            wrong_attempts=args.wrong_attempts,
            elapsed_minutes=args.elapsed_minutes,
        )
        print(
            json.dumps(
                {**submission.model_dump(mode="json"), "score": score_submission(submission)},
                indent=2,
            )
        )
        return 0
    if args.cmd == "watch":
        setup_logging()
        try:
            asyncio.run(_watch(args.room, args.username))
        except KeyboardInterrupt:
            pass
        return 0

    parser.print_help()
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
