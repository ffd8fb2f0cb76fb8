"""ChapterOne commerce core: order lifecycle, stock and wallet ledgers."""
