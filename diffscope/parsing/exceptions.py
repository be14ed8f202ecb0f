class MalformedHeaderError(Exception):
    error_type = "malformed_header"

    def __init__(self, header_line: str):
        super().__init__(f"Cannot split diff header into two paths: {header_line!r}")
        self.header_line = header_line
