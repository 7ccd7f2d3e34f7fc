# URL identity for deduplication.
# Input: raw URL string from the command line or a parsed document
# Process:
#   - strip surrounding whitespace
#   - reject empty strings
# Output: the string used both to claim and to fetch the URL
# No scheme/host canonicalization happens here: two spellings of one page are two URLs.

def normalize_url(url: str) -> str:
    if url is None:
        raise ValueError("URL must not be None")
    normalized = url.strip()
    if not normalized:
        raise ValueError("URL must not be empty")
    return normalized
