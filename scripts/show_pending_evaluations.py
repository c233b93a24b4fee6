"""List the evaluations a user still has to answer, with their evaluator status.

Usage:
    python -m scripts.show_pending_evaluations <user_id> [--refresh]
Reads API_BASE_URL (and optionally API_TOKEN) from the environment or .env.
"""

import asyncio
import sys

from evalsync.core.lifespan import create_runtime
from evalsync.domain.exceptions import EvalSyncException
from evalsync.shared.telemetry.logging import setup_logging


async def main() -> None:
    """Print pending evaluations for user_id."""
    if len(sys.argv) < 2:
        print(
            "Usage: python -m scripts.show_pending_evaluations <user_id> [--refresh]",
            file=sys.stderr,
        )
        sys.exit(1)
    user_id = sys.argv[1]
    refresh = "--refresh" in sys.argv[2:]

    setup_logging()
    async with create_runtime() as runtime:
        try:
            if refresh:
                evaluations = await runtime.evaluations.refresh_cache(user_id)
            else:
                evaluations = await runtime.evaluations.get_pending_evaluations(user_id)
            summary = await runtime.evaluations.get_evaluator_statuses(
                [str(e["id"]) for e in evaluations], user_id
            )
        except EvalSyncException as e:
            print(f"{e.error_code}: {e.message}", file=sys.stderr)
            sys.exit(1)

    if not evaluations:
        print(f"No pending evaluations for user {user_id}")
        return
    for evaluation in evaluations:
        status = summary.statuses.get(str(evaluation["id"]))
        print(f"{evaluation['id']}\t{evaluation['name']}\t{status.value if status else '-'}")
    print(
        f"{len(evaluations)} evaluations: {summary.pending} pending, "
        f"{summary.in_progress} in progress, {summary.completed} completed"
    )


if __name__ == "__main__":
    asyncio.run(main())
