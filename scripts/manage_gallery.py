import asyncio
import argparse
from newspulse.services.shared_store import StoreNotConfiguredError, shared_store

async def list_posts():
    """List all gallery posts, newest first."""
    print("Fetching gallery posts...")
    rows = await shared_store.get_gallery()
    if not rows:
        print("\nNo gallery posts found.")
        return

    print("\nGallery Posts:")
    for i, row in enumerate(rows, 1):
        print(f"{i}. [{row.get('created_at', '?')}] {row.get('title') or 'Untitled'} -> {row.get('media_url')}")

async def add_post(title: str, description: str, media_url: str):
    """Add a new gallery post."""
    if not media_url.startswith(("http://", "https://")):
        print("Error: media URL must be an http(s) link")
        return

    try:
        rows = await shared_store.add_gallery_post(title, description, media_url)
    except StoreNotConfiguredError:
        print("Error: SUPABASE_URL/SUPABASE_KEY are not set.")
        return
    new_id = rows[0].get("id") if rows else "?"
    print(f"Successfully added '{title}' (id {new_id}).")

async def main():
    parser = argparse.ArgumentParser(description="Manage gallery posts for News Pulse")
    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    # List command
    subparsers.add_parser('list', help='List all gallery posts')

    # Add command
    add_parser = subparsers.add_parser('add', help='Add a new gallery post')
    add_parser.add_argument('title', help='Post title')
    add_parser.add_argument('media_url', help='Public image or video URL')
    add_parser.add_argument('--description', default="", help='Optional caption')

    args = parser.parse_args()

    if args.command in ('list', 'add'):
        await shared_store.connect()

    if args.command == 'list':
        await list_posts()
    elif args.command == 'add':
        await add_post(args.title, args.description, args.media_url)
    else:
        parser.print_help()

if __name__ == "__main__":
    asyncio.run(main())
