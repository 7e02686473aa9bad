"""CLI interface for news-junkie.

Commands:
    setup    - Configure backend URL, anon key and credentials
    feed     - Browse the feed with search and tag filters
    post     - Share a link
    delete   - Delete one of your posts
    follow   - Follow a user
    unfollow - Stop following a user
    discover - List other users and whether you follow them
    profile  - Show a user's profile
    status   - Show current configuration
"""

import asyncio
import sys
from pathlib import Path

import click

from .config import (
    CONFIG_FILE,
    AppConfig,
    AuthConfig,
    config_exists,
    load_config,
    save_config,
)
from .errors import FetchError, NewsJunkieError
from .logging_config import setup_logging
from .query import INTERSECTION, UNION, build_query


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--config", type=click.Path(), default=None, help="Config file path")
@click.pass_context
def main(ctx, verbose, config):
    """News Junkie — share links, follow people, read the feed."""
    setup_logging(debug=verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else CONFIG_FILE


def _require_config(ctx) -> AppConfig:
    config_path = ctx.obj["config_path"]
    if not config_exists(config_path):
        click.echo(
            "Error: No config found. Run 'news-junkie setup' first.",
            err=True,
        )
        sys.exit(1)
    try:
        return load_config(config_path)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _make_client(config: AppConfig):
    from .client import NewsJunkieClient

    return NewsJunkieClient(
        config.supabase_url,
        config.anon_key,
        access_token=config.auth.access_token,
        user_id=config.auth.user_id,
    )


def _run(coro) -> None:
    """Run a command coroutine, turning client errors into exit code 1."""
    try:
        asyncio.run(coro)
    except NewsJunkieError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.pass_context
def setup(ctx):
    """Configure the backend and your credentials."""
    config_path = ctx.obj["config_path"]

    click.echo("News Junkie — Setup")
    click.echo("=" * 40)
    click.echo()
    click.echo("You need your Supabase project URL and anon (public) key.")
    click.echo("Both are under Project Settings -> API in the Supabase dashboard.")
    click.echo()

    url = click.prompt("supabase url")
    anon_key = click.prompt("anon key", hide_input=True)

    click.echo()
    click.echo("(Optional) Access token and user id — press Enter to skip.")
    click.echo("Without them you can read the public feed but not post or follow.")
    access_token = click.prompt(
        "access token", default="", show_default=False, hide_input=True
    )
    user_id = click.prompt("user id", default="", show_default=False)

    config = AppConfig(
        supabase_url=url.strip(),
        anon_key=anon_key.strip(),
        auth=AuthConfig(
            access_token=access_token.strip() or None,
            user_id=user_id.strip() or None,
        ),
    )

    save_config(config, config_path)
    click.echo(f"\nConfig saved to {config_path}")
    click.echo("Run 'news-junkie feed' to read the latest posts.")


def _format_post(post) -> str:
    author = post.author.name if post.author and post.author.name else post.user_id
    lines = [
        f"[{post.created_at.strftime('%Y-%m-%d %H:%M')}] {author} ({post.id})",
        f"  {post.description}",
        f"  {post.news_link}",
    ]
    if post.archive_link:
        lines.append(f"  archived: {post.archive_link}")
    if post.tags:
        lines.append("  " + " ".join(f"#{t}" for t in post.tags))
    return "\n".join(lines)


@main.command()
@click.option("-s", "--search", default="", help="Text to match in description or link")
@click.option("-t", "--tag", "tags", multiple=True, help="Filter by tag (repeatable)")
@click.option(
    "--all-tags",
    is_flag=True,
    help="Require every --tag instead of any of them",
)
@click.option("--user", "user_id", default=None, help="Only posts by this user id")
@click.option("--following", is_flag=True, help="Only posts by people you follow")
@click.option("--pages", default=1, type=click.IntRange(min=1), help="Pages to load")
@click.option(
    "--page-size", type=click.IntRange(min=1), default=None, help="Posts per page"
)
@click.pass_context
def feed(ctx, search, tags, all_tags, user_id, following, pages, page_size):
    """Print the feed, newest first."""
    config = _require_config(ctx)

    if following and not config.auth.user_id:
        click.echo("Error: --following needs auth.user_id in your config.", err=True)
        sys.exit(1)

    from .events import PostEventBus
    from .feed import FeedSession

    async def run():
        async with _make_client(config) as client:
            user_ids = None
            if following and not user_id:
                user_ids = await client.fetch_following_user_ids(config.auth.user_id)

            query = build_query(
                search_text=search,
                tags=tags,
                tag_mode=INTERSECTION if all_tags else UNION,
                user_id=user_id,
                user_ids=user_ids,
                page_size=page_size or config.page_size,
            )

            click.echo("Loading...", err=True)
            async with FeedSession(client.fetch_posts_page, query, PostEventBus()) as session:
                for _ in range(pages - 1):
                    if not session.has_more or session.error:
                        break
                    await session.load_more()

                if session.view == "error":
                    raise FetchError(session.error)
                if session.view == "empty":
                    click.echo("No posts yet.")
                    return

                for post in session.posts:
                    click.echo(_format_post(post))
                    click.echo()

                if not session.has_more:
                    click.echo("You're all caught up.")

    _run(run())


@main.command()
@click.argument("description")
@click.argument("link")
@click.option("-t", "--tag", "tags", multiple=True, help="Tag (repeatable)")
@click.option("--archive", is_flag=True, help="Store an archived snapshot of the link")
@click.pass_context
def post(ctx, description, link, tags, archive):
    """Share LINK with DESCRIPTION."""
    config = _require_config(ctx)

    from .events import PostEventBus
    from .mutations import PostInput, PostMutations

    async def run():
        async with _make_client(config) as client:
            mutations = PostMutations(client, PostEventBus(), config.auth.user_id)
            created = await mutations.create_post(
                PostInput(description=description, news_link=link, tags=list(tags)),
                should_archive=archive,
            )
            click.echo(f"Posted {created.id}")

    _run(run())


@main.command()
@click.argument("post_id")
@click.pass_context
def delete(ctx, post_id):
    """Delete one of your posts."""
    config = _require_config(ctx)

    from .events import PostEventBus
    from .mutations import PostMutations

    async def run():
        async with _make_client(config) as client:
            mutations = PostMutations(client, PostEventBus(), config.auth.user_id)
            await mutations.delete_post(post_id)
            click.echo(f"Deleted {post_id}")

    _run(run())


def _change_follow(ctx, target_user_id: str, want_following: bool) -> None:
    config = _require_config(ctx)

    if not config.auth.user_id or config.auth.user_id == target_user_id:
        click.echo(
            "Error: following needs auth.user_id and a different target user.",
            err=True,
        )
        sys.exit(1)

    from .optimistic import FollowToggle

    async def run():
        async with _make_client(config) as client:
            toggle = FollowToggle(client, config.auth.user_id, target_user_id)
            await toggle.load()
            if toggle.is_following != want_following:
                await toggle.toggle()
            if toggle.error:
                raise FetchError(toggle.error)
            state = "Following" if toggle.is_following else "Not following"
            click.echo(f"{state} {target_user_id}")

    _run(run())


@main.command()
@click.argument("user_id")
@click.pass_context
def follow(ctx, user_id):
    """Follow USER_ID."""
    _change_follow(ctx, user_id, True)


@main.command()
@click.argument("user_id")
@click.pass_context
def unfollow(ctx, user_id):
    """Stop following USER_ID."""
    _change_follow(ctx, user_id, False)


@main.command()
@click.option("--toggle", "toggle_ids", multiple=True, help="Flip follow for this user id (repeatable)")
@click.pass_context
def discover(ctx, toggle_ids):
    """List other users, newest first, with your follow state."""
    config = _require_config(ctx)

    if not config.auth.user_id:
        click.echo("Error: discover needs auth.user_id in your config.", err=True)
        sys.exit(1)

    from .discover import DiscoverList

    async def run():
        async with _make_client(config) as client:
            listing = DiscoverList(client, config.auth.user_id)
            await listing.load()
            if listing.error:
                raise FetchError(listing.error)

            for target in toggle_ids:
                if listing.find(target) is None:
                    raise FetchError(f"No user {target} on the discover list")
                await listing.toggle_follow(target)
                if listing.error:
                    raise FetchError(listing.error)

            if not listing.junkies:
                click.echo("No one else here yet.")
                return

            for junkie in listing.junkies:
                mark = "[following]" if junkie.is_following else "[ ]"
                click.echo(f"{mark} {junkie.display_name} ({junkie.id})")
                if junkie.profile.description:
                    click.echo(f"  {junkie.profile.description}")

    _run(run())


@main.command()
@click.argument("user_id", required=False)
@click.pass_context
def profile(ctx, user_id):
    """Show USER_ID's profile (yours by default)."""
    config = _require_config(ctx)
    user_id = user_id or config.auth.user_id
    if not user_id:
        click.echo("Error: give a USER_ID or set auth.user_id in your config.", err=True)
        sys.exit(1)

    from .optimistic import FollowToggle

    async def run():
        async with _make_client(config) as client:
            found = await client.fetch_profile(user_id)
            if found is None:
                raise FetchError(f"No profile found for {user_id}")

            click.echo(f"{(found.name or '').strip() or 'Unnamed'} ({found.id})")
            if found.description:
                click.echo(found.description)
            if found.profile_picture_url:
                click.echo(f"Picture: {found.profile_picture_url}")

            if user_id == config.auth.user_id:
                tags = await client.fetch_usually_viewed_tags(user_id)
                if tags:
                    click.echo("Usually viewed: " + " ".join(f"#{t}" for t in tags))
                return

            toggle = FollowToggle(client, config.auth.user_id, user_id)
            if toggle.enabled:
                await toggle.load()
                click.echo("You follow them." if toggle.is_following else "You don't follow them.")

    _run(run())


@main.command()
@click.pass_context
def status(ctx):
    """Show current configuration."""
    config_path = ctx.obj["config_path"]
    has_config = config_exists(config_path)

    click.echo("News Junkie — Status")
    click.echo("=" * 40)
    click.echo(f"Config: {'Found' if has_config else 'Not configured'} ({config_path})")

    if not has_config:
        click.echo("\nRun 'news-junkie setup' to get started.")
        return

    config = load_config(config_path)
    click.echo(f"Backend: {config.supabase_url}")
    click.echo(f"Signed in as: {config.auth.user_id or 'anonymous'}")
    click.echo(f"Page size: {config.page_size}")
