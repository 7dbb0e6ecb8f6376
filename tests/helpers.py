import json


class FakeResponse:
    """Just enough of ``requests.Response`` for the upstream clients."""

    def __init__(self, status_code=200, payload=None, lines=None):
        self.status_code = status_code
        self._payload = payload
        self._lines = lines or []
        self.closed = False

    @property
    def text(self):
        return json.dumps(self._payload) if self._payload is not None else ""

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload

    def iter_lines(self):
        for line in self._lines:
            yield line.encode("utf-8")

    def close(self):
        self.closed = True


def parse_frame(frame):
    assert frame.startswith("data: ")
    assert frame.endswith("\n\n")
    return json.loads(frame[len("data: "):])


def drain(connection, timeout=0.01):
    frames = []
    while True:
        frame = connection.read(timeout=timeout)
        if frame is None:
            return frames
        frames.append(frame)
