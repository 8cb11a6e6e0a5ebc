import argparse
import asyncio
import logging
import sys

from blogcms.app_shell.config import STORE_BACKEND_ENV, load_config
from blogcms.app_shell.context import ServiceContext
from blogcms.components.posts import (
    BlogPostError,
    DeletePostInput,
    DuplicatePostInput,
    PostOperationOutput,
    PublishPostInput,
    UnpublishPostInput,
    run,
)
from blogcms.core.entities import Author
from blogcms.core.services.text import generate_slug

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cli")

# Commands that write, keyed to the verb reported on success
MUTATING_COMMANDS = {
    "publish": "Published",
    "unpublish": "Unpublished",
    "delete": "Deleted",
    "duplicate": "Duplicated",
}


def get_context(rules_path: str | None) -> ServiceContext:
    try:
        rules = load_config(rules_path)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Cannot load rules: {e}")
        sys.exit(1)
    return ServiceContext.create(rules)


def _report(result: PostOperationOutput, done: str) -> int:
    if result.success:
        print(f"{done}: {result.post_id}")
        return 0
    for error in result.errors:
        logger.error(f"[{error.code}] {error.message}")
    return 1


async def handle_check_slug(ctx: ServiceContext, args: argparse.Namespace) -> int:
    slug = args.slug or generate_slug(args.title or "")
    if not slug:
        logger.error("Provide a slug or --title to derive one from.")
        return 1
    available = await ctx.post_service.is_slug_available(args.lang, slug, args.exclude)
    print(f"{args.lang}/{slug}: {'available' if available else 'taken'}")
    return 0 if available else 2


async def handle_post_command(ctx: ServiceContext, args: argparse.Namespace) -> int:
    if args.command == "publish":
        inp = PublishPostInput(post_id=args.post_id)
    elif args.command == "unpublish":
        inp = UnpublishPostInput(post_id=args.post_id)
    elif args.command == "delete":
        inp = DeletePostInput(post_id=args.post_id)
    else:
        author = Author(uid=args.author_uid, display_name=args.author_name)
        inp = DuplicatePostInput(post_id=args.post_id, author=author)

    result = await run(inp, service=ctx.post_service)
    return _report(result, MUTATING_COMMANDS[args.command])


async def handle_audit(ctx: ServiceContext, args: argparse.Namespace) -> int:
    audit = await ctx.post_service.audit_slug_index()
    print(f"Checked {audit.entries_checked} index entries against {audit.posts_checked} posts.")
    for label, keys in (
        ("orphan", audit.orphan_entries),
        ("stale", audit.stale_entries),
        ("missing", audit.missing_entries),
    ):
        for key in keys:
            print(f" - {label}: {key}")
    return 0 if audit.is_consistent else 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Blog CMS CLI")
    parser.add_argument("--rules", help="Path to rules.yaml (default: $BLOGCMS_RULES_PATH)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # check-slug
    check_parser = subparsers.add_parser("check-slug", help="Check if a slug is free")
    check_parser.add_argument("slug", nargs="?", help="Slug to check")
    check_parser.add_argument("--lang", default="en", help="Language code")
    check_parser.add_argument("--title", help="Derive the slug from a title")
    check_parser.add_argument("--exclude", help="Post id whose own claim counts as free")

    # publish / unpublish / delete
    for name, help_text in (
        ("publish", "Publish a post"),
        ("unpublish", "Unpublish a post"),
        ("delete", "Delete a post and release its slugs"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("post_id")

    # duplicate
    dup_parser = subparsers.add_parser("duplicate", help="Copy a post as a new draft")
    dup_parser.add_argument("post_id")
    dup_parser.add_argument("--author-uid", required=True, help="Uid of the acting author")
    dup_parser.add_argument("--author-name", help="Display name of the acting author")

    # audit
    subparsers.add_parser("audit", help="Check the slug index against posts")

    return parser


async def dispatch(ctx: ServiceContext, args: argparse.Namespace) -> int:
    if args.command == "check-slug":
        return await handle_check_slug(ctx, args)
    elif args.command == "audit":
        return await handle_audit(ctx, args)
    return await handle_post_command(ctx, args)


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    ctx = get_context(args.rules)
    if args.command in MUTATING_COMMANDS and ctx.rules.store.backend == "memory":
        logger.error(
            f"'{args.command}' needs a persistent store; "
            f"set {STORE_BACKEND_ENV}=firestore or store.backend in the rules file"
        )
        sys.exit(1)
    try:
        code = asyncio.run(dispatch(ctx, args))
    except BlogPostError as e:
        logger.error(str(e))
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
