#!/usr/bin/env python3
"""
Main entry point for the MockPrep practice client.
Allows running the package with: python -m mockprep <command>

Commands:
    sync    List the markdown question banks in the configured repository
    quiz    Typed quiz with AI grading
    live    Voice interview with the live model

Options (quiz and live):
    --demo | --mixed | --file=NAME   Question source (default: demo)
    --count=N                        Number of questions (default from config)
"""
import asyncio
import sys
import threading
from typing import Iterable, List, Optional

from .config import get_config, Config
from .bank import BankSource, Question, RepoFile, load_bank, parse_questions, select_questions
from .infrastructure.data import QuestionBankRepository, RepositorySyncError
from .infrastructure.llm import GeminiRestClient
from .interview import InterviewSession, SessionStatus
from .quiz import QuizSession, QuestionAnalyzer, AnswerValidator, CodePreparer
from .utils import setup_logging

USAGE = "Usage: python -m mockprep {sync|quiz|live} [--demo|--mixed|--file=NAME] [--count=N]"


def _sync(config: Config) -> List[RepoFile]:
    repository = QuestionBankRepository(
        config.repo_owner, config.repo_name, config.repo_path, config.repo_branch
    )
    print(f"🔄 Syncing {config.repo_owner}/{config.repo_name}/{config.repo_path}@{config.repo_branch}...")
    return repository.sync()


def _parse_options(args: List[str], config: Config):
    source = BankSource.DEMO
    file_name = None
    count = config.question_count
    for arg in args:
        if arg == "--demo":
            source = BankSource.DEMO
        elif arg == "--mixed":
            source = BankSource.MIXED
        elif arg.startswith("--file="):
            source = BankSource.FILE
            file_name = arg.split("=", 1)[1]
        elif arg.startswith("--count="):
            try:
                count = int(arg.split("=", 1)[1])
            except ValueError:
                print("❌ Invalid count value. Use --count=N")
                sys.exit(1)
        else:
            print(f"❌ Unknown option: {arg}")
            print(USAGE)
            sys.exit(1)
    return source, file_name, count


def _pick_questions(config: Config, args: List[str]) -> List[Question]:
    source, file_name, count = _parse_options(args, config)
    files: List[RepoFile] = []
    if source != BankSource.DEMO:
        try:
            files = _sync(config)
        except RepositorySyncError as e:
            print(f"⚠️  Sync failed ({e}), using the demo bank")
            source = BankSource.DEMO

    try:
        bank = load_bank(source, files, file_name)
    except ValueError as e:
        print(f"❌ {e}")
        print("   Available: " + (", ".join(f.name for f in files) or "(none)"))
        sys.exit(1)

    if not bank:
        print("❌ No questions found in the selected bank")
        sys.exit(1)

    selected = select_questions(bank, count)
    print(f"📚 {len(selected)} of {len(bank)} questions selected ({source.value})")
    return selected


def _llm_client(config: Config) -> GeminiRestClient:
    if not config.has_llm_credentials:
        print("⚠️  No GEMINI_API_KEY or GOOGLE_CLOUD_PROJECT set; grading will be unavailable")
    return GeminiRestClient(
        api_key=config.gemini_api_key,
        project=config.google_cloud_project,
        model=config.model_name,
        credentials_json=config.google_application_credentials,
    )


def run_sync(config: Config) -> None:
    try:
        files = _sync(config)
    except RepositorySyncError as e:
        print(f"❌ Sync failed: {e}")
        sys.exit(1)
    if not files:
        print("📭 No markdown files found")
        return
    for repo_file in files:
        print(f"📄 {repo_file.name}: {len(parse_questions(repo_file.content or ''))} questions")


def _show_question(session: QuizSession) -> None:
    question = session.current_question()
    q_type = question.type.value if question.type else "UNKNOWN"
    print(f"\n❓ Question {session.current_index + 1}/{session.total} [{q_type}]")
    print(question.display_text)
    if question.code_snippet:
        print(f"\n```{question.language or ''}\n{question.code_snippet}\n```")
    if question.options:
        for option in question.options:
            print(f"   • {option}")
    previous = session.answer_for(question)
    if previous is not None:
        print(f"   (answered: {previous.user_input!r}, {'correct' if previous.is_correct else 'incorrect'})")


def run_quiz(config: Config, args: List[str]) -> None:
    questions = _pick_questions(config, args)
    client = _llm_client(config)
    session = QuizSession(
        questions,
        analyzer=QuestionAnalyzer(client),
        validator=AnswerValidator(client),
        preparer=CodePreparer(client),
    )
    print("💡 Type your answer, or :run  :prev  :next  :quit")

    while True:
        _show_question(session)
        try:
            line = input("✏️  > ").strip()
        except EOFError:
            break

        if line == ":quit":
            break
        if line == ":prev":
            if not session.previous():
                print("⏮️  Already at the first question")
            continue
        if line == ":next":
            if not session.next():
                break
            continue
        if line == ":run":
            result = session.run_snippet()
            if result.error:
                print(f"⚠️  {result.error}")
            print(result.output or "(no output)")
            continue
        if not line:
            continue

        print("🤔 Checking...")
        answer = session.submit(line)
        print(f"{'✅ Correct' if answer.is_correct else '❌ Incorrect'}: {answer.feedback}")
        if answer.proof:
            print(f"   {answer.proof}")
        if not session.next():
            break

    result = session.finish()
    print(f"\n🏁 Score: {result.score}/{result.total} ({result.percentage:.0f}%)")


async def _live(session: InterviewSession, lines: Optional[Iterable[str]] = None) -> None:
    """Drive a live session from typed commands; the session is always hung up on exit."""
    commands: asyncio.Queue = asyncio.Queue()
    loop = asyncio.get_running_loop()
    source = sys.stdin if lines is None else lines

    def read_commands():
        try:
            for line in source:
                loop.call_soon_threadsafe(commands.put_nowait, line.strip().lower())
            loop.call_soon_threadsafe(commands.put_nowait, "q")
        except RuntimeError:
            # Event loop already closed
            return

    threading.Thread(target=read_commands, daemon=True).start()
    print("🎙️  Commands: m = mute/unmute, r = retry after an error, q = hang up")
    try:
        await session.start()
        await _command_loop(session, commands)
    finally:
        await session.hangup()


async def _command_loop(session: InterviewSession, commands: asyncio.Queue) -> None:
    while session.status != SessionStatus.ENDED:
        command_task = asyncio.ensure_future(commands.get())
        waiters = {command_task}
        finished_task: Optional[asyncio.Future] = None
        if not session.is_finished:
            finished_task = asyncio.ensure_future(session.wait_finished())
            waiters.add(finished_task)

        try:
            done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                if not waiter.done():
                    waiter.cancel()
        if command_task not in done:
            continue

        command = command_task.result()
        if command == "q":
            await session.hangup()
        elif command == "m":
            muted = session.toggle_mute()
            print("🔇 Muted" if muted else "🔊 Unmuted")
        elif command == "r":
            if session.status == SessionStatus.ERROR:
                await session.retry()
            else:
                print("ℹ️  Retry is only available after an error")


def run_live(config: Config, args: List[str]) -> None:
    questions = _pick_questions(config, args)
    session: Optional[InterviewSession] = None

    def show_status(status: SessionStatus) -> None:
        if status == SessionStatus.CONNECTING:
            print("📞 Connecting to the interviewer...")
        elif status == SessionStatus.CONNECTED:
            print("🟢 Connected. Start talking!")
        elif status == SessionStatus.ERROR:
            print(f"❌ {session.error_message if session else 'Connection error'} (r to retry, q to quit)")
        elif status == SessionStatus.ENDED:
            print("👋 Call ended")

    session = InterviewSession(questions, config, on_status_change=show_status)
    try:
        asyncio.run(_live(session))
    except KeyboardInterrupt:
        print("\n👋 Interrupted")
        return

    summary = session.summary()
    print(f"📊 {summary.duration_seconds:.0f}s, {summary.chunks_sent} chunks sent, "
          f"{summary.chunks_received} received, {summary.interruptions} interruptions")


def main():
    """Command-line interface for the practice client."""
    if len(sys.argv) < 2 or sys.argv[1] in ("-h", "--help"):
        print(USAGE)
        sys.exit(0 if len(sys.argv) >= 2 else 1)

    config = get_config()
    log_path = setup_logging(config.log_file, config.log_level)
    print(f"📝 Logging to {log_path}")

    command, args = sys.argv[1], sys.argv[2:]
    if command == "sync":
        run_sync(config)
    elif command == "quiz":
        run_quiz(config, args)
    elif command == "live":
        run_live(config, args)
    else:
        print(f"❌ Unknown command: {command}")
        print(USAGE)
        sys.exit(1)


if __name__ == "__main__":
    main()
