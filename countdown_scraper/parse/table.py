"""Console table rendering for dry runs."""
from countdown_scraper.parse.models import Product

CYAN = "\x1b[36m"
WHITE = "\x1b[37m"
RED = "\x1b[31m"
GREEN = "\x1b[32m"
CLEAR = "\x1b[0m"


def colourise(colour: str, text: str) -> str:
    return f"{colour}{text}{CLEAR}"


class ProductTableFormatter:
    """Formats products as table rows, alternating row colours for readability.

    Create one per table so the alternation starts fresh.
    """

    def __init__(self, colour_a: str = CYAN, colour_b: str = WHITE):
        self.colour_a = colour_a
        self.colour_b = colour_b
        self._use_a = False

    def next_colour(self) -> str:
        self._use_a = not self._use_a
        return self.colour_a if self._use_a else self.colour_b

    def header(self) -> str:
        return (
            f"{'ID'.ljust(6)} | {'Name'.ljust(50)} | {'Size'.ljust(16)} | "
            f"{'Price'.ljust(6)} | Categories\n" + "-" * 120
        )

    def row(self, product: Product) -> str:
        categories = ", ".join(product.category) if product.category else ""
        size = (product.size or "")[:16].ljust(16)
        text = (
            f"{product.id.rjust(6)} | {product.name[:50].ljust(50)} | {size} | "
            f"$ {str(product.current_price).rjust(4)} | {categories}"
        )
        return colourise(self.next_colour(), text)


def format_price_change(name: str, old_price: float, new_price: float) -> str:
    """Green for a price drop, red for a rise."""
    increased = new_price > old_price
    text = (
        f"  Price {'Up   : ' if increased else 'Down : '}"
        f"{name[:47].ljust(47)} | ${str(old_price).rjust(4)} > ${new_price}"
    )
    return colourise(RED if increased else GREEN, text)
