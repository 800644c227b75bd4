import fitz  # PyMuPDF
from typing import List, Dict, Any, Tuple
from collections import Counter
from docchat.core.errors import EmptyContentError
from docchat.models.passage import PageText

class PDFParser:
    """
    Page-level PDF text extraction with PyMuPDF.
    Text blocks are read in reading order; blocks repeated at the same
    Y-position on many pages (running headers/footers) are dropped.
    """

    def __init__(self, header_footer_threshold: int = 3):
        self.header_footer_threshold = header_footer_threshold

    def parse_pages(self, data: bytes) -> List[PageText]:
        """
        Returns one PageText per page, blank pages included, so the page
        count matches the document.
        """
        try:
            raw_blocks, page_count = self._extract_raw_blocks(data)
        except (RuntimeError, ValueError) as e:  # FileDataError derives from RuntimeError
            raise EmptyContentError(f"Could not read PDF content: {e}") from e

        suppress = self._identify_repetitive_blocks(raw_blocks, page_count)

        texts_by_page: Dict[int, List[str]] = {p: [] for p in range(1, page_count + 1)}
        for b in raw_blocks:
            if (round(b["y0"], 0), b["text"]) in suppress:
                continue
            texts_by_page[b["page_number"]].append(b["text"])

        return [
            PageText(page_number=p, text="\n".join(texts_by_page[p]).strip())
            for p in range(1, page_count + 1)
        ]

    def _extract_raw_blocks(self, data: bytes) -> Tuple[List[Dict[str, Any]], int]:
        blocks = []
        with fitz.open(stream=data, filetype="pdf") as doc:
            page_count = doc.page_count
            for page_num, page in enumerate(doc):
                # (x0, y0, x1, y1, text, block_no, block_type)
                for b in page.get_text("blocks", sort=True):
                    if b[6] != 0:  # Image block
                        continue
                    text = " ".join(b[4].split())
                    if not text:
                        continue
                    blocks.append({
                        "text": text,
                        "page_number": page_num + 1,
                        "y0": b[1]
                    })
        return blocks, page_count

    def _identify_repetitive_blocks(self, blocks: List[Dict[str, Any]], page_count: int) -> set:
        """
        Detects text that appears at the same Y-position on multiple pages.
        Short documents are left untouched.
        """
        if page_count < self.header_footer_threshold:
            return set()

        pos_text_counts = Counter()
        for b in blocks:
            pos_text_counts[(round(b["y0"], 0), b["text"])] += 1

        return {pos_hash for pos_hash, count in pos_text_counts.items()
                if count >= self.header_footer_threshold}
