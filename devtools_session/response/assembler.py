"""Per-call response assembly."""
import logging
from typing import TYPE_CHECKING, Literal, Optional, Union

from pydantic import BaseModel

from ..snapshot.formatter import format_snapshot
from .files import save_file

if TYPE_CHECKING:
    from ..session import Session

logger = logging.getLogger(__name__)

HANDLE_DIALOG_TOOL = "handle_dialog"


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImageContent(BaseModel):
    type: Literal["image"] = "image"
    data: str
    mimeType: str


class ImageContentData(BaseModel):
    """Base64 image payload attached by a tool."""

    data: str
    mimeType: str


class SnapshotParams(BaseModel):
    verbose: bool = False
    file_path: Optional[str] = None


Content = Union[TextContent, ImageContent]


class ToolResponse:
    """Collects the output of one tool invocation and renders it.

    Tools append lines and images while they run; ``handle`` then refreshes
    pages and captures a snapshot if asked to, and builds the content blocks.
    """

    def __init__(self) -> None:
        self._include_pages = False
        self._snapshot_params: Optional[SnapshotParams] = None
        self._lines: list[str] = []
        self._images: list[ImageContentData] = []

    def set_include_pages(self, value: bool) -> None:
        self._include_pages = value

    @property
    def include_pages(self) -> bool:
        return self._include_pages

    def include_snapshot(self, verbose: bool = False, file_path: Optional[str] = None) -> None:
        self._snapshot_params = SnapshotParams(verbose=verbose, file_path=file_path)

    @property
    def snapshot_params(self) -> Optional[SnapshotParams]:
        return self._snapshot_params

    def append_response_line(self, value: str) -> None:
        self._lines.append(value)

    @property
    def response_lines(self) -> tuple[str, ...]:
        return tuple(self._lines)

    def attach_image(self, data: str, mime_type: str) -> None:
        self._images.append(ImageContentData(data=data, mimeType=mime_type))

    @property
    def images(self) -> list[ImageContentData]:
        return list(self._images)

    async def handle(self, tool_name: str, session: "Session") -> list[Content]:
        """Finish the invocation and build its content blocks.

        Raises:
            FileSaveError: If the snapshot could not be written to its file.
        """
        if self._include_pages:
            await session.refresh_pages()

        formatted_snapshot: Optional[str] = None
        params = self._snapshot_params
        if params is not None:
            snapshot = await session.capture_snapshot(params.verbose)
            if snapshot is not None:
                text = format_snapshot(snapshot)
                if params.file_path:
                    await save_file(text.encode("utf-8"), params.file_path)
                    formatted_snapshot = f"Saved snapshot to {params.file_path}."
                else:
                    formatted_snapshot = text

        return self.format(tool_name, session, formatted_snapshot)

    def format(
        self,
        tool_name: str,
        session: "Session",
        formatted_snapshot: Optional[str] = None,
    ) -> list[Content]:
        response = [f"# {tool_name} response"]
        response.extend(self._lines)

        dialog = session.get_dialog()
        if dialog is not None:
            default_value = ""
            if dialog.type == "prompt":
                default_value = f' (default value: "{dialog.default_value}")'
            response.append(
                "# Open dialog\n"
                f"{dialog.type}: {dialog.message}{default_value}.\n"
                f"Call {HANDLE_DIALOG_TOOL} to handle it before continuing."
            )

        if self._include_pages:
            response.append("## Pages")
            for page in session.get_pages():
                selected = " [selected]" if session.is_page_selected(page) else ""
                response.append(f"{session.get_page_id(page)}: {page.url}{selected}")

        if formatted_snapshot:
            response.append("## Latest page snapshot")
            response.append(formatted_snapshot)

        content: list[Content] = [TextContent(text="\n".join(response))]
        content.extend(
            ImageContent(data=image.data, mimeType=image.mimeType) for image in self._images
        )
        return content
