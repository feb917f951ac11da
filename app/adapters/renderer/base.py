from abc import ABC, abstractmethod

from app.schemas.codes import RGB, CodeKind, Shape


class AbstractRenderer(ABC):
    """Interface for renderers that turn render parameters into PNG bytes.

    Implementations must be deterministic: identical inputs produce
    byte-identical output, since rendered bytes are cached by parameters.
    """

    @abstractmethod
    def render(self, kind: CodeKind, content: str, size: int, shape: Shape) -> bytes:
        """Render a QR code or linear barcode.

        Args:
            kind: Which code to draw.
            content: Text to encode.
            size: Output height in pixels; also the width of square output.
            shape: "square", or "rectangle" for a 4:1 canvas.

        Returns:
            bytes: PNG-encoded image.

        Raises:
            RenderAppError: If the content cannot be encoded or drawn.
        """
        ...

    @abstractmethod
    def render_gradient(self, size: int, start: RGB, end: RGB) -> bytes:
        """Render a square horizontal gradient from ``start`` to ``end``."""
        ...
