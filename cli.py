# cli.py - interactive admin console for the catalog
import json
import os
import sys
from datetime import datetime
from typing import List, Dict, Any, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich import box

from prompt_toolkit import prompt
from prompt_toolkit.completion import WordCompleter, PathCompleter
from prompt_toolkit.styles import Style as PromptStyle

from sdk.pycatalog import CatalogClient

console = Console()
c = CatalogClient(
    base_url=os.getenv("CATALOG_URL", "http://127.0.0.1:8085"),
    token=os.getenv("ADMIN_TOKEN"),
)


# Global state for status messages and autocomplete
status_message = "Ready"
category_cache: List[Dict[str, Any]] = []

custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})


# ---------------------------
# Display helpers
# ---------------------------
def total_stock(product: Dict[str, Any]) -> int:
    return sum(
        int(size.get("stock", 0))
        for color in product.get("colors", [])
        for size in color.get("sizes", [])
    )


def show_products(products: List[Dict[str, Any]]):
    if not products:
        console.print("[italic yellow]No products found[/italic yellow]")
        return

    table = Table(
        title="📦 Products Catalog",
        box=box.ROUNDED,
        header_style="bold cyan",
        title_style="bold magenta",
        show_lines=True
    )
    table.add_column("ID", style="dim", width=6)
    table.add_column("Title", style="bold", width=24)
    table.add_column("Category", width=14)
    table.add_column("Price", justify="right", width=10)
    table.add_column("Colors", width=24)
    table.add_column("Stock", justify="right", width=7)

    for p in products:
        colors = ", ".join(col.get("name", "?") for col in p.get("colors", []))
        table.add_row(
            str(p.get("id", "N/A")),
            p.get("title", "N/A"),
            p.get("category", "N/A"),
            f"{float(p.get('price', 0)):.2f}",
            colors,
            str(total_stock(p)),
        )
    console.print(table)


def show_categories(categories: List[Dict[str, Any]]):
    if not categories:
        console.print("[italic yellow]No categories found[/italic yellow]")
        return

    table = Table(
        title="🏷️ Categories",
        box=box.ROUNDED,
        header_style="bold blue",
        title_style="bold blue",
    )
    table.add_column("ID", style="dim", width=16)
    table.add_column("Name", style="bold", width=20)
    table.add_column("Description", width=40)

    for cat in categories:
        table.add_row(cat.get("id", "N/A"), cat.get("name", "N/A"), cat.get("description", ""))
    console.print(table)


def show_health(health: Dict[str, Any]):
    ok = health.get("status") == "healthy"
    style = "green" if ok else "red"
    lines = [f"[bold]Status:[/bold] [{style}]{health.get('status', 'unknown')}[/{style}]"]
    if ok:
        counts = health.get("counts", {})
        lines.append(f"[bold]Products:[/bold] {counts.get('products', 0)}")
        lines.append(f"[bold]Categories:[/bold] {counts.get('categories', 0)}")
        lines.append(f"[bold]Cache:[/bold] {health.get('services', {}).get('cache', '?')}")
        lines.append(f"[bold]Latency:[/bold] {health.get('latency', '?')}")
    else:
        lines.append(f"[red]{health.get('error', '')}[/red]")
    console.print(Panel.fit("\n".join(lines), title="🩺 Health", border_style=style))


def show_status(message: str, is_success: bool = True):
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{message}[/{style}]", title="Status")


# ---------------------------
# API wrapper
# ---------------------------
def try_api(fn, *args, success_msg: Optional[str] = None, **kwargs):
    """
    Calls fn(*args, **kwargs) behind a spinner.
    Returns the result, or None after printing the error.
    """
    global status_message
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            progress.add_task(description="Processing...", total=None)
            result = fn(*args, **kwargs)

        if success_msg:
            status_message = success_msg
            console.print(show_status(success_msg, True))
        return result
    except Exception as e:
        status_message = f"Error: {e}"
        console.print(show_status(f"Error: {e}", False))
        return None


def load_json_list(path: str) -> Optional[List[Any]]:
    try:
        with open(os.path.expanduser(path)) as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        console.print(show_status(f"Error: cannot read {path}: {e}", False))
        return None
    if not isinstance(data, list):
        console.print(show_status("Error: file must contain a JSON list", False))
        return None
    return data


# ---------------------------
# Autocompletion helpers
# ---------------------------
def refresh_categories():
    global category_cache
    category_cache = try_api(c.list_categories) or []


def get_category_completer():
    if not category_cache:
        refresh_categories()
    ids = [cat.get("id", "") for cat in category_cache]
    return WordCompleter([i for i in ids if i], ignore_case=True)


def prompt_with_autocomplete(message: str, completer=None, default: str = ""):
    return prompt(f"{message} ", completer=completer, style=custom_style, default=default)


def create_header():
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)

    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    header.add_row(
        "🛍️ Catalog Sync",
        "[bold blue]Catalog Admin Console[/bold blue]",
        f"[dim]{now}[/dim]"
    )
    return Panel(header, style="bold blue")


# ---------------------------
# Main menu
# ---------------------------
def menu():
    global status_message

    console.clear()
    console.print(create_header())

    if not c.token:
        console.print("[yellow]ADMIN_TOKEN not set: write operations will be rejected[/yellow]")

    refresh_categories()

    while True:
        if status_message:
            console.print(show_status(status_message, "Error" not in status_message))

        menu_table = Table.grid(padding=(0, 2))
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)

        options = [
            ("1", "📦 List products", "6", "📥 Load categories from file"),
            ("2", "🏷️ List categories", "7", "🔄 Clear product cache"),
            ("3", "➕ Add category", "8", "🔑 Verify admin token"),
            ("4", "🗑️ Delete category", "9", "🩺 Health"),
            ("5", "📥 Load products from file", "q", "👋 Quit"),
        ]

        for row in options:
            menu_table.add_row(*row)

        console.print(Panel(menu_table, title="📋 Menu", border_style="yellow"))

        choice = prompt_with_autocomplete(
            "\nChoose an option",
            completer=WordCompleter([str(i) for i in range(1, 10)] + ["q", "quit", "exit"])
        ).strip()

        if choice == "1":
            products = try_api(c.list_products, success_msg="Products loaded")
            if products is not None:
                show_products(products)

        elif choice == "2":
            categories = try_api(c.list_categories, success_msg="Categories loaded")
            if categories is not None:
                show_categories(categories)

        elif choice == "3":
            cid = prompt_with_autocomplete("Category ID").strip()
            name = Prompt.ask("Display name", default=cid[:1].upper() + cid[1:])
            description = Prompt.ask("Description (optional)", default="")
            resp = try_api(c.add_category, cid, name, description or None, success_msg=f"Category '{name}' saved")
            if resp:
                refresh_categories()

        elif choice == "4":
            cid = prompt_with_autocomplete("Category ID", completer=get_category_completer()).strip()
            if Confirm.ask(f"[red]Delete '{cid}'? Its products move to another category.[/red]"):
                resp = try_api(c.delete_category, cid)
                if resp:
                    console.print(show_status(resp.get("message", "Deleted"), True))
                    refresh_categories()

        elif choice == "5":
            path = prompt_with_autocomplete("Products JSON file", completer=PathCompleter(expanduser=True))
            data = load_json_list(path)
            if data is not None and Confirm.ask(f"[red]Replace ALL products with {len(data)} entries?[/red]"):
                resp = try_api(c.save_products, data)
                if resp and resp.get("success"):
                    console.print(show_status(resp.get("message", "Saved"), True))
                elif resp:
                    failures = resp.get("failures", [])
                    console.print(Panel.fit(
                        "\n".join(f"[red]{f.get('product')}[/red]: {f.get('error')}" for f in failures),
                        title=f"❌ {len(failures)} products failed",
                    ))

        elif choice == "6":
            path = prompt_with_autocomplete("Categories JSON file", completer=PathCompleter(expanduser=True))
            data = load_json_list(path)
            if data is not None:
                resp = try_api(c.save_categories, data)
                if resp:
                    console.print(show_status(resp.get("message", "Saved"), True))
                    refresh_categories()

        elif choice == "7":
            try_api(c.clear_cache, success_msg="Product cache cleared")

        elif choice == "8":
            valid = try_api(c.verify)
            if valid is not None:
                console.print(show_status("Token is valid" if valid else "Token is NOT valid", bool(valid)))

        elif choice == "9":
            health = try_api(c.health)
            if health:
                show_health(health)

        elif choice.lower() in ("q", "quit", "exit"):
            if Confirm.ask("Are you sure you want to quit?"):
                console.print(Panel.fit("[bold green]Bye! 👋[/bold green]", title="Goodbye"))
                sys.exit(0)

        console.print()
        console.rule(style="dim")


if __name__ == "__main__":
    try:
        menu()
    except KeyboardInterrupt:
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n\n[bold red]Unexpected error: {e}[/bold red]")
        sys.exit(1)
