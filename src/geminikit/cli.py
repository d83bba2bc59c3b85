"""
geminikit 커맨드라인 도구

    geminikit generate "안녕" --model gemini-2.5-flash
    geminikit stream "긴 이야기를 들려줘"
    geminikit chat --system "짧게 대답해"
    geminikit image "고양이 픽셀 아트" -o cat.png
    geminikit files list
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from .client import DEFAULT_CHAT_MODEL, DEFAULT_MODEL, GeminiClient
from .errors import GeminiError
from .images import DEFAULT_IMAGE_MODEL
from .logging import setup_logging

EXIT_COMMANDS = {"exit", "quit", "/q"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="geminikit", description="Gemini API command line client"
    )
    parser.add_argument("--api-key", default=None, help="API key (default: GEMINI_API_KEY)")
    parser.add_argument("--log-level", default="WARNING", help="Log level")
    parser.add_argument(
        "--log-format", choices=("text", "json"), default="text", help="Log format"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    generate = sub.add_parser("generate", help="Single prompt generation")
    generate.add_argument("prompt")
    generate.add_argument("--model", default=DEFAULT_CHAT_MODEL)
    generate.add_argument("--system", default=None, help="System instruction")
    generate.add_argument("--temperature", type=float, default=0.5)
    generate.add_argument("--json", action="store_true", help="Request JSON output")

    stream = sub.add_parser("stream", help="Streaming generation")
    stream.add_argument("prompt")
    stream.add_argument("--model", default=DEFAULT_CHAT_MODEL)
    stream.add_argument("--system", default=None)

    chat = sub.add_parser("chat", help="Interactive thread conversation")
    chat.add_argument("--model", default=DEFAULT_MODEL)
    chat.add_argument("--system", default=None)

    image = sub.add_parser("image", help="Image generation")
    image.add_argument("prompt")
    image.add_argument("--model", default=DEFAULT_IMAGE_MODEL)
    image.add_argument("--input", action="append", default=None, help="Input image to edit")
    image.add_argument("--size", default=None)
    image.add_argument("-n", type=int, default=1)
    image.add_argument("-o", "--output", default="image.png")

    files = sub.add_parser("files", help="Files API")
    files_sub = files.add_subparsers(dest="files_command", required=True)
    files_sub.add_parser("list")
    upload = files_sub.add_parser("upload")
    upload.add_argument("path")
    upload.add_argument("--display-name", default=None)
    upload.add_argument("--mime-type", default=None)
    delete = files_sub.add_parser("delete")
    delete.add_argument("name")

    return parser


def _print_json(data: Any) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


async def _generate(client: GeminiClient, args: argparse.Namespace) -> int:
    response = await client.generate_content(
        args.prompt,
        model=args.model,
        system_instruction=args.system,
        temperature=args.temperature,
        response_mime_type="application/json" if args.json else None,
    )
    if response.text is None:
        print(response.error or "응답이 비어 있습니다.", file=sys.stderr)
        return 1
    print(response.text)
    return 0


async def _stream(client: GeminiClient, args: argparse.Namespace) -> int:
    async for chunk in client.generate_content_stream(
        args.prompt, model=args.model, system_instruction=args.system
    ):
        print(chunk.delta_text, end="", flush=True)
    print()
    return 0


async def _chat(client: GeminiClient, args: argparse.Namespace) -> int:
    thread = client.threads.create(model=args.model)
    print(f"[{thread.id}] 종료하려면 exit 입력", file=sys.stderr)

    while True:
        try:
            line = await asyncio.to_thread(input, "you> ")
        except EOFError:
            break
        line = line.strip()
        if not line:
            continue
        if line in EXIT_COMMANDS:
            break

        client.messages.create(thread.id, role="user", content=line)
        await client.runs.create(thread.id, system_instruction=args.system)

        last = client.messages.list(thread.id).data[-1]
        if last.role == "model":
            print(f"gemini> {last.text()}")
        else:
            print("gemini> (응답 없음)")

    client.threads.delete(thread.id)
    return 0


async def _image(client: GeminiClient, args: argparse.Namespace) -> int:
    response = await client.images.generate(
        args.prompt, model=args.model, images=args.input, size=args.size, n=args.n
    )
    if not response.images:
        print(response.text or response.error or "이미지가 생성되지 않았습니다.", file=sys.stderr)
        return 1

    if len(response.images) == 1:
        paths = [args.output]
    else:
        stem, dot, ext = args.output.rpartition(".")
        if not dot:
            stem, ext = args.output, "png"
        paths = [f"{stem}_{i}.{ext}" for i in range(len(response.images))]

    for saved in response.save_images(paths):
        if saved is not None:
            print(saved)
    return 0


async def _files(client: GeminiClient, args: argparse.Namespace) -> int:
    if args.files_command == "list":
        _print_json(await client.files.list())
    elif args.files_command == "upload":
        ref = await client.files.upload(
            args.path, display_name=args.display_name, mime_type=args.mime_type
        )
        _print_json(ref.model_dump())
    elif args.files_command == "delete":
        await client.files.delete(args.name)
        print(f"deleted {args.name}")
    return 0


_COMMANDS = {
    "generate": _generate,
    "stream": _stream,
    "chat": _chat,
    "image": _image,
    "files": _files,
}


async def run(args: argparse.Namespace) -> int:
    async with GeminiClient(api_key=args.api_key) as client:
        return await _COMMANDS[args.command](client, args)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, format=args.log_format)

    try:
        return asyncio.run(run(args))
    except GeminiError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
