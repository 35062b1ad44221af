"""Single-page PDF rasterization into PNG images.

Responsibilities:
- Render every split page at the configured DPI with `pypdfium2`.
- Save deterministic RGB PNG output as `page-NNN.png` under the public tree.
"""

from __future__ import annotations

from pathlib import Path
import os

import pypdfium2 as pdfium

from ..config import ManualConfig
from ..errors import StageFatalError
from ..parsing import page_filename
from ..telemetry.logger import RunLogger
from .page_files import prune_stale_pages, scan_page_files


class PageRenderer:
    """Rasterize split page PDFs into PNG page images."""

    stage_name = "render"

    def __init__(self, run_logger: RunLogger | None = None) -> None:
        self._run_logger = run_logger

    def render(self, config: ManualConfig) -> int:
        """Render all split pages and return the number of images written."""

        pages = scan_page_files(config.split_dir, "pdf", stage=self.stage_name)
        if not pages:
            raise StageFatalError(
                stage=self.stage_name,
                detail=f"No split pages found in {config.split_dir}",
                hint="Run `manualpress split` for this manual first.",
            )

        config.image_dir.mkdir(parents=True, exist_ok=True)
        scale = config.settings.render_scale
        for page_num, pdf_path in pages:
            target = config.image_dir / page_filename(page_num, "png")
            self._render_page(page_num, pdf_path, target, scale)
            if self._run_logger is not None:
                self._run_logger.log_page(self.stage_name, page_num, "rendered")

        prune_stale_pages(config.image_dir, "png", len(pages))
        return len(pages)

    def _render_page(self, page_num: int, pdf_path: Path, target: Path, scale: float) -> None:
        """Render the first page of one split PDF into `target`."""

        temp_path = target.with_name(f".{target.name}.tmp")
        try:
            document = pdfium.PdfDocument(str(pdf_path))
            try:
                page_count = len(document)
                if page_count == 0:
                    raise StageFatalError(
                        stage=self.stage_name,
                        detail=f"Split page {pdf_path.name} contains no pages.",
                        hint="Run `manualpress split` again to regenerate page PDFs.",
                    )
                if page_count > 1 and self._run_logger is not None:
                    self._run_logger.log_warning(
                        self.stage_name,
                        "extra_pages_ignored",
                        page=page_num,
                        page_count=page_count,
                    )
                bitmap = document[0].render(scale=scale)
                image = bitmap.to_pil().convert("RGB")
                image.save(temp_path, format="PNG")
            finally:
                document.close()
            os.replace(temp_path, target)
        except StageFatalError:
            raise
        except Exception as exc:
            raise StageFatalError(
                stage=self.stage_name,
                detail=f"Failed to render page {page_num}: {exc}",
                hint="Verify the split page PDF is valid, then rerun `manualpress render`.",
            ) from exc
        finally:
            if temp_path.exists():
                temp_path.unlink()
