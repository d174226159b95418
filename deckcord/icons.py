"""Button images: rendering with Pillow and a single-flight cache."""

import asyncio
import base64
import io
from collections.abc import Awaitable, Callable
from logging import Logger

from PIL import Image, ImageDraw, ImageOps, UnidentifiedImageError

from .constants import (
    BADGE_COLOR_RGB,
    BADGE_DIAMETER_RATIO,
    BADGE_INSET_RATIO,
    BADGE_OUTLINE_RATIO,
    DEFAULT_ICON_SIZE,
)
from .models import ExternalCommandError, IconSet

__all__ = ["IconCache", "badge_box", "render_icon_set", "to_data_url"]

DATA_URL_PREFIX = "data:image/png;base64,"


def to_data_url(image: Image.Image) -> str:
    """Encode `image` as a PNG data URL."""
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return DATA_URL_PREFIX + base64.b64encode(buffer.getvalue()).decode("ascii")


def badge_box(size: int) -> tuple[int, int, int, int]:
    """Return the bounding box of the running badge for a `size` wide canvas."""
    diameter = round(size * BADGE_DIAMETER_RATIO)
    inset = round(size * BADGE_INSET_RATIO)
    origin = size - diameter - inset
    return (origin, origin, origin + diameter, origin + diameter)


def render_icon_set(source: bytes, size: int = DEFAULT_ICON_SIZE) -> IconSet:
    """Render the idle & active button images from the application icon.

    The icon is scaled onto a transparent square canvas. The active variant
    gets a green status badge in the lower right corner.

    Args:
        source: Encoded image (PNG, ICO, ...)
        size: Canvas size in pixels

    Raises:
        ExternalCommandError: `source` isn't a readable image
    """
    try:
        with Image.open(io.BytesIO(source)) as img:
            img.load()
            icon = img.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError) as e:
        msg = f"Invalid icon image: {e}"
        raise ExternalCommandError(msg) from e

    fitted = ImageOps.contain(icon, (size, size), method=Image.Resampling.LANCZOS)
    idle = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    idle.paste(fitted, ((size - fitted.width) // 2, (size - fitted.height) // 2), fitted)

    active = idle.copy()
    draw = ImageDraw.Draw(active)
    draw.ellipse(
        badge_box(size),
        fill=(*BADGE_COLOR_RGB, 255),
        outline=(0, 0, 0, 255),
        width=max(2, round(size * BADGE_OUTLINE_RATIO)),
    )
    return IconSet(idle=to_data_url(idle), active=to_data_url(active))


class IconCache:
    """Lazily load the IconSet once per process.

    Concurrent callers share the in-flight load and get the same result or
    the same exception. A failed load leaves the cache empty so the next
    call starts over.
    """

    def __init__(self, loader: Callable[[], Awaitable[IconSet]], log: Logger) -> None:
        """Initialize.

        Args:
            loader: Coroutine function producing the icons
            log: Logger
        """
        self._loader = loader
        self.log = log
        self._value: IconSet | None = None
        self._pending: asyncio.Future[IconSet] | None = None
        self.load_count = 0

    @property
    def value(self) -> IconSet | None:
        """The cached icons, None if not loaded yet."""
        return self._value

    async def get(self) -> IconSet:
        """Return the icons, loading them if needed."""
        if self._value is not None:
            return self._value
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._load())
        # a cancelled waiter must not cancel the shared load
        return await asyncio.shield(self._pending)

    async def _load(self) -> IconSet:
        self.load_count += 1
        self.log.debug("Loading icons (attempt %d)", self.load_count)
        try:
            value = await self._loader()
        finally:
            self._pending = None
        self._value = value
        return value
