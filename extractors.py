"""Pull readable text out of web pages and uploaded documents for import."""

import io
import re
from pathlib import Path
from urllib.parse import urlparse
from zipfile import BadZipFile

import docx
import requests
from bs4 import BeautifulSoup
from docx.opc.exceptions import PackageNotFoundError
from pypdf import PdfReader
from pypdf.errors import PdfReadError

MAX_FILE_SIZE = 10 * 1024 * 1024
TEXT_EXTENSIONS = (".txt", ".md", ".markdown")
SUPPORTED_EXTENSIONS = TEXT_EXTENSIONS + (".pdf", ".docx")
BLOCK_TAGS = ["p", "li", "div", "tr", "blockquote", "h4", "h5", "h6"]

# Pages rendered client-side come back nearly empty from a plain GET
JS_RENDERED_DOMAINS = [
    (r"notion\.(site|so)$", "Notion",
     "Export the page as Markdown or PDF from Notion, then upload the file instead."),
    (r"docs\.google\.com$", "Google Docs",
     "Export as DOCX or PDF from Google Docs, then upload the file."),
    (r"figma\.com$", "Figma", "Copy the content manually or use Figma's export feature."),
    (r"miro\.com$", "Miro", "Export the board content and upload the file."),
    (r"airtable\.com$", "Airtable", "Export to CSV and upload the file."),
]


def is_url(value: str) -> bool:
    parsed = urlparse(value or "")
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def url_domain(url: str) -> str:
    return (urlparse(url).hostname or "").lower()


def check_js_rendered(url: str) -> tuple[str, str] | None:
    """Return (site name, suggestion) for domains a plain fetch can't read."""
    host = url_domain(url)
    for pattern, name, suggestion in JS_RENDERED_DOMAINS:
        if re.search(pattern, host, re.IGNORECASE):
            return name, suggestion
    return None


def html_to_text(html: str) -> str:
    """Flatten a page to text, keeping headings and code blocks as Markdown."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "nav", "header", "footer", "aside", "noscript"]):
        tag.decompose()
    root = soup.find("article") or soup.find("main") or soup.body or soup

    for pre in root.find_all("pre"):
        pre.replace_with(f"\n```\n{pre.get_text().strip()}\n```\n")
    for level in range(1, 4):
        for heading in root.find_all(f"h{level}"):
            heading.replace_with(f"\n{'#' * level} {heading.get_text(' ', strip=True)}\n")

    for bold in root.find_all(["strong", "b"]):
        bold.replace_with(f"**{bold.get_text(strip=True)}**")
    for br in root.find_all("br"):
        br.replace_with("\n")
    for block in root.find_all(BLOCK_TAGS):
        block.append("\n")

    text = root.get_text()
    lines = [line.rstrip() for line in text.splitlines()]
    return re.sub(r"\n{3,}", "\n\n", "\n".join(lines)).strip()


def fetch_url_text(url: str) -> str:
    """Best-effort extraction of a prompt page's visible text."""
    if not is_url(url):
        raise ValueError(f"Invalid URL: {url}")
    js_site = check_js_rendered(url)
    if js_site:
        name, suggestion = js_site
        raise ValueError(f"{name} pages are rendered with JavaScript and can't be imported. {suggestion}")

    resp = requests.get(url, timeout=15, headers={"User-Agent": "prompt-import-toolkit"})
    resp.raise_for_status()
    return html_to_text(resp.text)


def _pdf_text(data: bytes) -> str:
    reader = PdfReader(io.BytesIO(data))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def _docx_text(data: bytes) -> str:
    document = docx.Document(io.BytesIO(data))
    return "\n".join(p.text for p in document.paragraphs)


def extract_file_text(filename: str, data: bytes) -> str:
    """Extract text from an uploaded file, chosen by extension."""
    if len(data) > MAX_FILE_SIZE:
        raise ValueError(
            f"File too large ({len(data) / 1024 / 1024:.2f}MB). "
            f"Maximum size is {MAX_FILE_SIZE // 1024 // 1024}MB."
        )
    ext = Path(filename).suffix.lower()
    if ext in TEXT_EXTENSIONS:
        return data.decode("utf-8", errors="replace")
    try:
        if ext == ".pdf":
            return _pdf_text(data)
        if ext == ".docx":
            return _docx_text(data)
    except (PdfReadError, BadZipFile, PackageNotFoundError) as e:
        raise ValueError(f"Could not read {filename}: {e}") from e
    raise ValueError(
        f"Unsupported file type: {ext or filename}. Supported: {', '.join(SUPPORTED_EXTENSIONS)}"
    )
