from urllib.parse import quote

JSON_ENDPOINT = "api/json"


class URLBuilder:
    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    def json_endpoint(self, *paths: str) -> str:
        """Joins the base url, the quoted path segments and the api/json suffix"""
        segments = [quote(path.strip("/"), safe="/") for path in paths]
        return "/".join([self.base_url, *segments, JSON_ENDPOINT])
