#!/usr/bin/env python3
"""Command-line entry point for the readgye client.

Examples:
  readgye guest                       # use the shared guest account
  readgye login --email me@example.com
  readgye documents
  readgye result <document-id>
  readgye upload contract.pdf
  readgye watch                       # poll for completed analyses
  readgye chat                        # interactive counseling session
"""

import argparse
import asyncio
import getpass
import sys
from typing import Optional

import httpx
from loguru import logger

from readgye.archive import filter_entries
from readgye.client import ReadgyeClient, create_client
from readgye.config import load_config
from readgye.error_handling import ApiError, ReadgyeError
from readgye.logging_config import setup_logging
from readgye.models import Message
from readgye.notifications import format_notification_time
from tools.legacy_normalizer import summarize_risks


RISK_LABELS = {"HIGH": "높음", "MEDIUM": "중간", "LOW": "낮음", "UNKNOWN": "미분류"}
STATUS_LABELS = {"safe": "안전", "danger": "위험", "review": "검토 필요"}


def print_alert(title: str, message: str) -> None:
    print(f"\n🔔 {title}\n   {message}")


def _print_message(message: Message) -> None:
    speaker = "나" if message.role == "user" else "읽계 AI"
    marker = " (전송 실패)" if message.status == "failed" else ""
    print(f"[{speaker}]{marker} {message.content}")


async def cmd_login(client: ReadgyeClient, args: argparse.Namespace) -> int:
    password = args.password or getpass.getpass("비밀번호: ")
    result = await client.auth.sign_in_with_email(args.email, password)
    if not result.success:
        print(f"로그인 실패: {result.error}")
        return 1
    print(f"{client.auth.user.name}님, 환영합니다.")
    return 0


async def cmd_signup(client: ReadgyeClient, args: argparse.Namespace) -> int:
    password = args.password or getpass.getpass("비밀번호: ")
    result = await client.auth.sign_up_with_email(args.email, password, args.name)
    if not result.success:
        print(f"회원가입 실패: {result.error}")
        return 1
    print("회원가입이 완료되었습니다.")
    return 0


async def cmd_guest(client: ReadgyeClient, args: argparse.Namespace) -> int:
    if not client.config.is_guest_configured:
        print("GUEST_EMAIL이 설정되어 있지 않습니다.")
        return 1
    ok = await client.auth.sign_in_as_guest()
    print("게스트로 로그인했습니다." if ok else "게스트 로그인은 되었지만 서버 연결에 실패했습니다.")
    return 0


async def cmd_logout(client: ReadgyeClient, args: argparse.Namespace) -> int:
    await client.auth.sign_out()
    print("로그아웃되었습니다.")
    return 0


async def cmd_whoami(client: ReadgyeClient, args: argparse.Namespace) -> int:
    user = client.auth.user
    if user is None:
        print("로그인되어 있지 않습니다.")
        return 1
    profile = await client.auth.fetch_backend_profile()
    print(f"{user.name} <{user.email}>{' [관리자]' if user.is_admin else ''}")
    print(f"서버 연결: {'정상' if profile else '토큰 없음 또는 연결 실패'}")
    return 0


async def cmd_documents(client: ReadgyeClient, args: argparse.Namespace) -> int:
    entries = filter_entries(
        await client.archive.list_documents(), args.query or "", args.filter
    )
    if not entries:
        print("보관된 문서가 없습니다.")
    for entry in entries:
        print(f"{entry.date}  {STATUS_LABELS[entry.status]:<6}  {entry.title}  ({entry.id})")
    return 0


async def cmd_result(client: ReadgyeClient, args: argparse.Namespace) -> int:
    result = await client.archive.get_result(args.document_id)
    counts = summarize_risks(result.analysis)
    print(f"{result.filename}  (위험 {counts.high} / 주의 {counts.medium} / 안전 {counts.low})")
    if not result.analysis:
        print("분석 상세 결과가 없습니다.")
    for item in result.analysis:
        print(f"\n{item.clause_number} {item.title}  [{RISK_LABELS[item.risk_level.value]}]")
        print(f"  요약: {item.summary or '-'}")
        print(f"  수정 제안: {item.suggestion or '-'}")
    return 0


async def cmd_delete(client: ReadgyeClient, args: argparse.Namespace) -> int:
    await client.archive.delete_document(args.document_id)
    print("문서를 삭제했습니다.")
    return 0


async def cmd_upload(client: ReadgyeClient, args: argparse.Namespace) -> int:
    document = await client.archive.upload_contract(args.path)
    print(f"업로드 완료: {document.filename} ({document.id}), 분석이 끝나면 알려드릴게요.")
    return 0


async def cmd_notifications(client: ReadgyeClient, args: argparse.Namespace) -> int:
    items = await client.notifications.refresh()
    if not items:
        print("알림이 없습니다.")
    for item in items:
        dot = " " if item.is_read else "•"
        print(f"{dot} {format_notification_time(item.created_at)}  {item.title}: {item.message}")
    if args.mark_all:
        await client.notifications.mark_all_read()
    return 0


async def cmd_watch(client: ReadgyeClient, args: argparse.Namespace) -> int:
    if not client.auth.token:
        print("로그인이 필요합니다.")
        return 1
    print(f"분석 완료 알림을 기다리는 중입니다 ({client.poller.interval:.0f}초 간격). Ctrl+C로 종료.")
    while client.poller.is_running:
        await asyncio.sleep(1)
    return 0


async def cmd_chat(client: ReadgyeClient, args: argparse.Namespace) -> int:
    chat = client.chat
    if await chat.on_focus():
        for message in chat.messages:
            _print_message(message)
    print("질문을 입력하세요. /new 새 상담, /sessions 목록, /load <id> 불러오기, /quit 종료")

    loop = asyncio.get_running_loop()
    while True:
        line = await loop.run_in_executor(None, input, "> ")
        text = line.strip()
        if text in ("/quit", "/exit"):
            return 0
        if text == "/new":
            chat.start_new_chat()
            print("새 상담을 시작합니다.")
            continue
        if text == "/sessions":
            for session in await chat.list_sessions():
                print(f"{session.id}  {session.created_at}  {session.title}")
            continue
        if text.startswith("/load "):
            if await chat.load_session(text.split(maxsplit=1)[1]):
                for message in chat.messages:
                    _print_message(message)
            continue

        answer = await chat.send_message(text)
        if answer is not None:
            _print_message(answer)
        elif chat.error:
            print(f"⚠ {chat.error}")


async def cmd_password(client: ReadgyeClient, args: argparse.Namespace) -> int:
    current = getpass.getpass("현재 비밀번호: ")
    new = getpass.getpass("새 비밀번호: ")
    confirm = getpass.getpass("새 비밀번호 확인: ")
    await client.account.change_password(current, new, confirm)
    print("비밀번호가 성공적으로 변경되었습니다.")
    return 0


COMMANDS = {
    "login": cmd_login,
    "signup": cmd_signup,
    "guest": cmd_guest,
    "logout": cmd_logout,
    "whoami": cmd_whoami,
    "documents": cmd_documents,
    "result": cmd_result,
    "delete": cmd_delete,
    "upload": cmd_upload,
    "notifications": cmd_notifications,
    "watch": cmd_watch,
    "chat": cmd_chat,
    "password": cmd_password,
}

# Commands that keep the notification poller running while they execute
POLLING_COMMANDS = {"watch", "chat"}


def parse_arguments(argv: Optional[list] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="readgye",
        description="읽계 contract-analysis client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--api-base-url", help="Backend URL (default: API_BASE_URL env var)")
    parser.add_argument("--storage-path", help="Local storage file (default: STORAGE_PATH env var)")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: LOG_LEVEL env var or INFO)"
    )
    parser.add_argument("--log-dir", help="Directory for log files (default: LOG_DIR env var)")

    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Sign in with email and password")
    login.add_argument("--email", required=True)
    login.add_argument("--password")

    signup = sub.add_parser("signup", help="Create an account and sign in")
    signup.add_argument("--email", required=True)
    signup.add_argument("--name", required=True)
    signup.add_argument("--password")

    sub.add_parser("guest", help="Sign in with the shared guest account")
    sub.add_parser("logout", help="Sign out and forget the stored session")
    sub.add_parser("whoami", help="Show the current user")

    documents = sub.add_parser("documents", help="List archived documents")
    documents.add_argument("--query", help="Filter by title")
    documents.add_argument("--filter", choices=["all", "done", "review"], default="all")

    result = sub.add_parser("result", help="Show the analysis of a document")
    result.add_argument("document_id")

    delete = sub.add_parser("delete", help="Delete an archived document")
    delete.add_argument("document_id")

    upload = sub.add_parser("upload", help="Upload a PDF contract for analysis")
    upload.add_argument("path")

    notifications = sub.add_parser("notifications", help="List notifications")
    notifications.add_argument("--mark-all", action="store_true", help="Mark all as read")

    sub.add_parser("watch", help="Poll for completed analyses until interrupted")
    sub.add_parser("chat", help="Interactive counseling chat")
    sub.add_parser("password", help="Change the account password")

    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    config = load_config(
        api_base_url=args.api_base_url,
        storage_path=args.storage_path,
        log_dir=args.log_dir,
        log_level=args.log_level,
    )
    setup_logging(log_dir=config.log_dir, level=config.log_level)

    client = create_client(
        config,
        alert=print_alert,
        auto_poll=args.command in POLLING_COMMANDS,
    )
    try:
        await client.start()
        return await COMMANDS[args.command](client, args)
    finally:
        await client.aclose()


def main(argv: Optional[list] = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_arguments(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except ApiError as e:
        print(f"서버 오류 ({e.status_code}): {e}")
        return 1
    except ReadgyeError as e:
        print(str(e))
        return 1
    except httpx.HTTPError as e:
        logger.error(f"Backend unreachable: {e}")
        print("서버에 연결할 수 없습니다.")
        return 1
    except EOFError:
        return 0


if __name__ == "__main__":
    sys.exit(main())
