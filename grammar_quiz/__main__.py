"""CLI entry point for grammar-quiz.

Usage:
  python -m grammar_quiz serve [--port PORT] [--host HOST]
  python -m grammar_quiz stop
  python -m grammar_quiz restart [--port PORT] [--host HOST]
  python -m grammar_quiz status
  python -m grammar_quiz generate [--count N] [--difficulty LEVEL] [--category TOPIC]
"""
from __future__ import annotations

import asyncio
import os
import signal
import sys
import time
from pathlib import Path

PID_FILE = Path(__file__).resolve().parent.parent / ".server.pid"
DEFAULT_PORT = 8765


def _flag(args: list[str], name: str, default: str) -> str:
    if name in args:
        i = args.index(name)
        if i + 1 < len(args):
            return args[i + 1]
    return default


def _running_pid() -> int | None:
    """PID of a live server, cleaning up a PID file left by a dead one."""
    try:
        pid = int(PID_FILE.read_text().strip())
        os.kill(pid, 0)
    except FileNotFoundError:
        return None
    except (ValueError, ProcessLookupError, PermissionError):
        PID_FILE.unlink(missing_ok=True)
        return None
    return pid


def serve(args: list[str]) -> None:
    import uvicorn

    pid = _running_pid()
    if pid is not None:
        print(f"Grammar Quiz is already running (PID {pid}); use 'restart' or 'stop'.")
        sys.exit(1)

    host = _flag(args, "--host", "127.0.0.1")
    port = int(_flag(args, "--port", str(DEFAULT_PORT)))
    PID_FILE.write_text(str(os.getpid()))
    print(f"Grammar Quiz: http://{host}:{port}  (Ctrl+C to stop)\n")
    try:
        uvicorn.run("grammar_quiz.app:app", host=host, port=port, timeout_graceful_shutdown=5)
    finally:
        PID_FILE.unlink(missing_ok=True)


def stop(args: list[str] | None = None) -> bool:
    pid = _running_pid()
    if pid is None:
        print("Grammar Quiz is not running.")
        return False
    os.kill(pid, signal.SIGTERM)
    PID_FILE.unlink(missing_ok=True)
    print(f"Stopped Grammar Quiz (PID {pid}).")
    return True


def restart(args: list[str]) -> None:
    if stop():
        time.sleep(1)
    serve(args)


def status(args: list[str] | None = None) -> None:
    from grammar_quiz.config import load_settings

    pid = _running_pid()
    s = load_settings()
    state = f"running (PID {pid})" if pid else "not running"
    print(f"Grammar Quiz is {state}.")
    print(f"LLM: {s.llm_provider}/{s.llm_model}, batch size {s.batch_size}")


def generate(args: list[str]) -> None:
    """Print one batch to the terminal, marking the correct option with '*'."""
    from grammar_quiz.config import load_settings
    from grammar_quiz.models import ALL, QuizFilter
    from grammar_quiz.providers import create_llm
    from grammar_quiz.question_generator import GenerationError, generate_questions

    settings = load_settings()
    try:
        count = int(_flag(args, "--count", str(settings.batch_size)))
        quiz_filter = QuizFilter.parse(_flag(args, "--difficulty", ALL), _flag(args, "--category", ALL))
        llm = create_llm(settings)
    except ValueError as e:
        print(e)
        sys.exit(1)

    print(f"Asking {llm.name()} for {count} questions...")
    try:
        questions = asyncio.run(generate_questions(
            llm, quiz_filter,
            count=count,
            learner_profile=settings.learner_profile,
            temperature=settings.question_temperature,
            thinking=settings.llm_thinking,
        ))
    except GenerationError as e:
        print(f"Generation failed: {e}")
        sys.exit(1)

    for n, q in enumerate(questions, 1):
        print(f"\n{n}. {q.rendered_sentence()}   [{q.difficulty.value} / {q.category.value}]")
        for opt in q.options:
            print(f"   {'*' if opt == q.correct_answer else ' '} {opt}")
        print(f"   Rule: {q.explanation.rule}")


COMMANDS = {
    "serve": serve,
    "stop": stop,
    "restart": restart,
    "status": status,
    "generate": generate,
}


def main():
    args = sys.argv[1:]
    command = args[0] if args else "serve"
    handler = COMMANDS.get(command)
    if handler is None:
        print(f"Unknown command: {command}")
        print(f"Commands: {', '.join(COMMANDS)}")
        sys.exit(1)
    handler(args[1:])


if __name__ == "__main__":
    main()
