"""
Entry point to run the saved-search digest job once (for cron-style hosts).

  python main.py            # send due digests
  python main.py --debug    # report what would be sent, change nothing
"""
import argparse
import json
import logging
import sys

from dotenv import load_dotenv


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Send due saved-search digests once.")
    parser.add_argument("--debug", action="store_true", help="evaluate watches without sending or updating")
    args = parser.parse_args(argv)

    # Load `.env` for local/dev runs (override=True so updates take effect after restart).
    load_dotenv(override=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    from core.config import missing_digest_config
    from core.database import init_db
    from worker.digests import run_digests

    missing = missing_digest_config()
    if missing:
        print(json.dumps({"error": f"Missing {missing[0]}"}), file=sys.stderr)
        return 1

    init_db()
    result = run_digests(debug=args.debug)
    print(json.dumps(result.as_json(debug=args.debug), ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
