"""CineScout - movie recommendations from deep web research

Simple CLI for running a recommendation stream locally or serving the API.
"""

import argparse
import asyncio
import sys

from cinescout.agents.research_agent import ResearchSession
from cinescout.errors import Misconfigured
from cinescout.llm_client import require_api_key
from cinescout.models.events import decode_frame
from cinescout.services.relay import relay_frames


def parse_preferences(values: list[str] | None) -> dict[str, str]:
    """Turn repeated ``Title=note`` arguments into a preference mapping."""
    preferences: dict[str, str] = {}
    for raw in values or []:
        title, sep, note = raw.partition("=")
        if not sep or not title.strip():
            raise ValueError(f"Preference must look like 'Title=what you love': {raw!r}")
        preferences[title.strip()] = note.strip()
    return preferences


async def run_recommendations(
    favorites: list[str],
    preferences: dict[str, str],
    model: str | None = None,
) -> int:
    """Stream recommendations for the given favorites to stdout."""
    print(f"Favorite movies: {', '.join(favorites)}")
    print("-" * 50)

    session = ResearchSession(favorites, preferences, model=model)
    exit_code = 0

    async for frame in relay_frames(session.messages()):
        payload = decode_frame(frame)
        if payload is None:
            continue
        event_type = payload.get("type")

        if event_type == "start":
            print(f"[*] {payload.get('message', '')}")

        elif event_type == "search":
            print(f"  [search] {payload.get('query', '')}")

        elif event_type == "fetch":
            print(f"  [read]   {payload.get('url', '')}")

        elif event_type == "thinking":
            print(f"  [~] {payload.get('content', '')}")

        elif event_type == "summary":
            print(f"  [+] {payload.get('content', '')}")

        elif event_type == "tool_progress":
            print(f"  [{payload.get('toolName')}] {payload.get('elapsed')}s", flush=True)

        elif event_type == "result":
            print(f"\n{'='*50}")
            print("RECOMMENDATIONS:")
            print(f"{'='*50}")
            print(payload.get("content", ""))

        elif event_type == "error":
            print(f"\n[!] Error: {payload.get('message', 'Unknown error')}")
            exit_code = 1

    return exit_code


def main():
    parser = argparse.ArgumentParser(description="CineScout movie recommendations")
    subparsers = parser.add_subparsers(dest="command", required=True)

    recommend = subparsers.add_parser("recommend", help="Run a recommendation stream in the terminal")
    recommend.add_argument("--movie", "-m", action="append", required=True, help="A favorite movie (repeatable)")
    recommend.add_argument("--pref", "-p", action="append", help="Preference note as 'Title=what you love' (repeatable)")
    recommend.add_argument("--model", help="Model to use (default: from config)")

    serve = subparsers.add_parser("serve", help="Serve the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=3000)

    args = parser.parse_args()

    if args.command == "serve":
        import uvicorn

        uvicorn.run("cinescout.main:app", host=args.host, port=args.port)
        return

    try:
        require_api_key()
        preferences = parse_preferences(args.pref)
    except (Misconfigured, ValueError) as e:
        print(f"[!] {e}", file=sys.stderr)
        sys.exit(2)

    sys.exit(asyncio.run(run_recommendations(args.movie, preferences, args.model)))


if __name__ == "__main__":
    main()
