"""Tests for the resumable upload driver."""

import asyncio
import io
from dataclasses import dataclass

import pytest

from onedrive_api.core.exceptions import (
    ConfigError,
    NotFoundError,
    ShortFileError,
    TooManyRetriesError,
    TransportError,
    UnexpectedStatusError,
    UploadCancelledError,
)
from onedrive_api.core.models import UploadSession
from onedrive_api.core.upload import (
    BackoffPolicy,
    ChunkSource,
    ChunkWindow,
    ResumableUploadDriver,
    content_range,
    validate_chunk_size,
)

CHUNK = 320 * 1024
UPLOAD_URL = "https://upload.example.com/session/abc"


@dataclass
class RecordedRequest:
    url: str
    content_range: str
    content_length: int
    body: bytes


class FakeUploadServer:
    """Records chunk requests and answers them from a status script.

    Once the script runs out, the server answers 202 for every range that
    does not end the file and 201 for the one that does.
    """

    def __init__(self, total_size: int, statuses=None):
        self.total_size = total_size
        self.statuses = list(statuses or [])
        self.requests: list[RecordedRequest] = []
        self.received = bytearray()

    async def put(self, url, body, headers):
        self.requests.append(
            RecordedRequest(
                url=url,
                content_range=headers["Content-Range"],
                content_length=int(headers["Content-Length"]),
                body=bytes(body),
            )
        )
        if self.statuses:
            status = self.statuses.pop(0)
        else:
            last_byte = int(headers["Content-Range"].split("-", 1)[1].split("/")[0])
            status = 201 if last_byte + 1 >= self.total_size else 202
        if status in (200, 201, 202):
            self.received.extend(body)
        return status

    @property
    def ranges(self):
        return [request.content_range for request in self.requests]


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def make_session(total_size):
    return UploadSession(upload_url=UPLOAD_URL, total_size=total_size)


def make_source(data: bytes) -> ChunkSource:
    return ChunkSource.from_fileobj(io.BytesIO(data))


def payload(size: int) -> bytes:
    return bytes(i % 251 for i in range(size))


@pytest.fixture
def sleep():
    return RecordingSleep()


def make_driver(server, sleep, **kwargs):
    return ResumableUploadDriver(server, chunk_size=CHUNK, sleep=sleep, **kwargs)


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_one_mebibyte_in_four_chunks(self, sleep):
        data = payload(1048576)
        server = FakeUploadServer(len(data))

        result = await make_driver(server, sleep).upload(
            make_session(len(data)), make_source(data)
        )

        assert server.ranges == [
            "bytes 0-327679/1048576",
            "bytes 327680-655359/1048576",
            "bytes 655360-983039/1048576",
            "bytes 983040-1048575/1048576",
        ]
        assert [r.content_length for r in server.requests] == [
            CHUNK,
            CHUNK,
            CHUNK,
            65536,
        ]
        assert bytes(server.received) == data
        assert result.total_size == 1048576
        assert result.requests_sent == 4
        assert result.retries == 0
        assert sleep.delays == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "size", [1, CHUNK - 1, CHUNK, CHUNK + 1, 3 * CHUNK, 3 * CHUNK + 17]
    )
    async def test_ranges_partition_the_file(self, sleep, size):
        data = payload(size)
        server = FakeUploadServer(size)

        await make_driver(server, sleep).upload(make_session(size), make_source(data))

        expected_start = 0
        for request in server.requests:
            start, rest = request.content_range[len("bytes ") :].split("-")
            end, total = rest.split("/")
            assert int(start) == expected_start
            assert int(end) - int(start) + 1 == request.content_length
            assert int(total) == size
            assert request.content_length <= CHUNK
            expected_start = int(end) + 1
        assert expected_start == size
        assert bytes(server.received) == data

    @pytest.mark.asyncio
    async def test_exact_multiple_has_no_trailing_empty_request(self, sleep):
        data = payload(2 * CHUNK)
        server = FakeUploadServer(len(data))

        result = await make_driver(server, sleep).upload(
            make_session(len(data)), make_source(data)
        )

        assert result.requests_sent == 2
        assert all(r.content_length == CHUNK for r in server.requests)

    @pytest.mark.asyncio
    async def test_empty_file_sends_single_zero_length_request(self, sleep):
        server = FakeUploadServer(0)

        result = await make_driver(server, sleep).upload(
            make_session(0), make_source(b"")
        )

        assert server.ranges == ["bytes 0--1/0"]
        assert server.requests[0].content_length == 0
        assert server.requests[0].body == b""
        assert result.requests_sent == 1

    @pytest.mark.asyncio
    async def test_requests_go_to_session_url(self, sleep):
        server = FakeUploadServer(10)

        await make_driver(server, sleep).upload(
            make_session(10), make_source(payload(10))
        )

        assert [r.url for r in server.requests] == [UPLOAD_URL]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("final_status", [200, 201])
    async def test_either_completion_status_finishes(self, sleep, final_status):
        server = FakeUploadServer(10, statuses=[final_status])

        result = await make_driver(server, sleep).upload(
            make_session(10), make_source(payload(10))
        )

        assert result.requests_sent == 1

    @pytest.mark.asyncio
    async def test_uploads_from_path(self, sleep, tmp_path):
        path = tmp_path / "data.bin"
        data = payload(CHUNK + 5)
        path.write_bytes(data)
        server = FakeUploadServer(len(data))

        result = await make_driver(server, sleep).upload(
            make_session(len(data)), str(path)
        )

        assert result.requests_sent == 2
        assert bytes(server.received) == data

    @pytest.mark.asyncio
    async def test_progress_callback_counts_every_byte(self, sleep):
        data = payload(2 * CHUNK + 100)
        server = FakeUploadServer(len(data), statuses=[202, 503, 202, 201])
        progress = []

        await make_driver(server, sleep, progress_callback=progress.append).upload(
            make_session(len(data)), make_source(data)
        )

        assert progress == [CHUNK, CHUNK, 100]
        assert sum(progress) == len(data)


class TestRetries:
    @pytest.mark.asyncio
    async def test_transient_errors_retry_same_range(self, sleep):
        data = payload(2 * CHUNK)
        server = FakeUploadServer(len(data), statuses=[503, 503, 202, 201])

        result = await make_driver(server, sleep).upload(
            make_session(len(data)), make_source(data)
        )

        first_range = f"bytes 0-{CHUNK - 1}/{len(data)}"
        assert server.ranges[:3] == [first_range] * 3
        assert server.ranges[3] == f"bytes {CHUNK}-{2 * CHUNK - 1}/{len(data)}"
        assert sleep.delays == [0.5, 1.0]
        assert result.retries == 2
        assert result.requests_sent == 4

    @pytest.mark.asyncio
    async def test_retry_resends_identical_bytes(self, sleep):
        data = payload(CHUNK + 10)
        server = FakeUploadServer(len(data), statuses=[500, 202, 502, 201])

        await make_driver(server, sleep).upload(
            make_session(len(data)), make_source(data)
        )

        assert server.requests[0].body == server.requests[1].body
        assert server.requests[2].body == server.requests[3].body
        assert bytes(server.received) == data

    @pytest.mark.asyncio
    async def test_sixth_consecutive_error_gives_up(self, sleep):
        data = payload(100)
        server = FakeUploadServer(len(data), statuses=[503] * 6)

        with pytest.raises(TooManyRetriesError) as exc_info:
            await make_driver(server, sleep).upload(
                make_session(len(data)), make_source(data)
            )

        assert len(server.requests) == 6
        assert set(server.ranges) == {"bytes 0-99/100"}
        assert sleep.delays == [0.5, 1.0, 2.0, 4.0, 8.0]
        assert exc_info.value.status == 503
        assert exc_info.value.attempts == 6
        assert exc_info.value.offset == 0

    @pytest.mark.asyncio
    async def test_error_count_resets_after_accepted_chunk(self, sleep):
        data = payload(2 * CHUNK)
        statuses = [500] * 5 + [202] + [500] * 5 + [201]
        server = FakeUploadServer(len(data), statuses=statuses)

        result = await make_driver(server, sleep).upload(
            make_session(len(data)), make_source(data)
        )

        assert result.retries == 10
        assert result.requests_sent == 12
        assert sleep.delays == [0.5, 1.0, 2.0, 4.0, 8.0] * 2

    @pytest.mark.asyncio
    async def test_custom_backoff_policy(self, sleep):
        server = FakeUploadServer(10, statuses=[500, 500, 500])
        policy = BackoffPolicy(base_delay=1.0, multiplier=3.0, max_retries=2)

        with pytest.raises(TooManyRetriesError):
            await make_driver(server, sleep, backoff=policy).upload(
                make_session(10), make_source(payload(10))
            )

        assert sleep.delays == [1.0, 3.0]
        assert len(server.requests) == 3


class TestFailures:
    @pytest.mark.asyncio
    async def test_client_error_fails_immediately(self, sleep):
        server = FakeUploadServer(100, statuses=[404])

        with pytest.raises(UnexpectedStatusError) as exc_info:
            await make_driver(server, sleep).upload(
                make_session(100), make_source(payload(100))
            )

        assert exc_info.value.status == 404
        assert str(exc_info.value) == "Unexpected status code: 404"
        assert len(server.requests) == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_accepted_on_final_range_is_unexpected(self, sleep):
        server = FakeUploadServer(100, statuses=[202])

        with pytest.raises(UnexpectedStatusError) as exc_info:
            await make_driver(server, sleep).upload(
                make_session(100), make_source(payload(100))
            )

        assert exc_info.value.status == 202

    @pytest.mark.asyncio
    async def test_source_shorter_than_session(self, sleep):
        source = ChunkSource.from_fileobj(io.BytesIO(payload(600)), size=1000)
        server = FakeUploadServer(1000)

        with pytest.raises(ShortFileError) as exc_info:
            await make_driver(server, sleep).upload(make_session(1000), source)

        assert server.requests == []
        assert exc_info.value.offset == 0
        assert exc_info.value.total_size == 1000

    @pytest.mark.asyncio
    async def test_file_truncated_mid_upload(self, sleep, tmp_path):
        path = tmp_path / "shrinking.bin"
        path.write_bytes(payload(3 * CHUNK))
        server = FakeUploadServer(3 * CHUNK)

        with ChunkSource.open(path) as source:
            with open(path, "r+b") as f:
                f.truncate(CHUNK + 1000)
            with pytest.raises(ShortFileError) as exc_info:
                await make_driver(server, sleep).upload(
                    make_session(3 * CHUNK), source
                )

        assert server.ranges == [f"bytes 0-{CHUNK - 1}/{3 * CHUNK}"]
        assert exc_info.value.offset == CHUNK

    @pytest.mark.asyncio
    async def test_missing_path_sends_nothing(self, sleep, tmp_path):
        server = FakeUploadServer(10)

        with pytest.raises(NotFoundError):
            await make_driver(server, sleep).upload(
                make_session(10), tmp_path / "missing.bin"
            )

        assert server.requests == []

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, sleep):
        class BrokenTransport:
            calls = 0

            async def put(self, url, body, headers):
                self.calls += 1
                raise TransportError("connection reset")

        transport = BrokenTransport()
        driver = ResumableUploadDriver(transport, chunk_size=CHUNK, sleep=sleep)

        with pytest.raises(TransportError):
            await driver.upload(make_session(10), make_source(payload(10)))

        assert transport.calls == 1
        assert sleep.delays == []


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_event_during_backoff(self):
        cancel_event = asyncio.Event()

        async def blocking_sleep(delay):
            cancel_event.set()
            await asyncio.Event().wait()

        server = FakeUploadServer(100, statuses=[503] * 6)
        driver = ResumableUploadDriver(server, chunk_size=CHUNK, sleep=blocking_sleep)

        with pytest.raises(UploadCancelledError, match="cancelled"):
            await driver.upload(
                make_session(100), make_source(payload(100)), cancel_event=cancel_event
            )

        assert len(server.requests) == 1

    @pytest.mark.asyncio
    async def test_cancel_event_during_request(self, sleep):
        cancel_event = asyncio.Event()

        class CancellingTransport:
            calls = 0

            async def put(self, url, body, headers):
                self.calls += 1
                cancel_event.set()
                await asyncio.Event().wait()

        transport = CancellingTransport()
        driver = ResumableUploadDriver(transport, chunk_size=CHUNK, sleep=sleep)

        with pytest.raises(UploadCancelledError, match="cancelled"):
            await driver.upload(
                make_session(100), make_source(payload(100)), cancel_event=cancel_event
            )

        assert transport.calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_task_cancel_waits_for_request_to_unwind(self, sleep, tmp_path):
        path = tmp_path / "data.bin"
        path.write_bytes(payload(100))
        started = asyncio.Event()
        unwound = []

        class SlowUnwindTransport:
            async def put(self, url, body, headers):
                started.set()
                try:
                    await asyncio.Event().wait()
                except asyncio.CancelledError:
                    await asyncio.sleep(0)
                    await asyncio.sleep(0)
                    unwound.append(url)
                    raise

        driver = ResumableUploadDriver(
            SlowUnwindTransport(), chunk_size=CHUNK, sleep=sleep
        )
        task = asyncio.ensure_future(
            driver.upload(make_session(100), path, cancel_event=asyncio.Event())
        )
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert unwound == [UPLOAD_URL]

    @pytest.mark.asyncio
    async def test_timeout_aborts_hanging_request(self, sleep):
        class HangingTransport:
            async def put(self, url, body, headers):
                await asyncio.Event().wait()

        driver = ResumableUploadDriver(
            HangingTransport(), chunk_size=CHUNK, sleep=sleep
        )

        with pytest.raises(UploadCancelledError, match="timed out"):
            await driver.upload(
                make_session(100), make_source(payload(100)), timeout=0.05
            )

    @pytest.mark.asyncio
    async def test_unset_event_does_not_interfere(self, sleep):
        data = payload(CHUNK + 1)
        server = FakeUploadServer(len(data))

        result = await make_driver(server, sleep).upload(
            make_session(len(data)),
            make_source(data),
            cancel_event=asyncio.Event(),
            timeout=10,
        )

        assert result.requests_sent == 2

    @pytest.mark.asyncio
    async def test_errors_pass_through_cancellation_wrapper(self, sleep):
        server = FakeUploadServer(100, statuses=[403])

        with pytest.raises(UnexpectedStatusError):
            await make_driver(server, sleep).upload(
                make_session(100),
                make_source(payload(100)),
                cancel_event=asyncio.Event(),
            )


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_one_driver_serves_parallel_uploads(self, sleep):
        class RoutingTransport:
            def __init__(self, servers):
                self.servers = servers

            async def put(self, url, body, headers):
                await asyncio.sleep(0)
                return await self.servers[url].put(url, body, headers)

        first, second = payload(2 * CHUNK + 3), payload(CHUNK + 9)
        servers = {
            "https://upload.example.com/a": FakeUploadServer(len(first)),
            "https://upload.example.com/b": FakeUploadServer(len(second)),
        }
        driver = ResumableUploadDriver(
            RoutingTransport(servers), chunk_size=CHUNK, sleep=sleep
        )

        results = await asyncio.gather(
            driver.upload(
                UploadSession(
                    upload_url="https://upload.example.com/a", total_size=len(first)
                ),
                make_source(first),
            ),
            driver.upload(
                UploadSession(
                    upload_url="https://upload.example.com/b", total_size=len(second)
                ),
                make_source(second),
            ),
        )

        assert [r.requests_sent for r in results] == [3, 2]
        assert bytes(servers["https://upload.example.com/a"].received) == first
        assert bytes(servers["https://upload.example.com/b"].received) == second


class TestHelpers:
    def test_content_range(self):
        window = ChunkWindow(offset=10, data=b"abcde")
        assert content_range(window, 100) == "bytes 10-14/100"

    def test_content_range_empty(self):
        assert content_range(ChunkWindow(offset=0, data=b""), 0) == "bytes 0--1/0"

    @pytest.mark.parametrize("chunk_size", [CHUNK, 2 * CHUNK, 10 * CHUNK])
    def test_valid_chunk_sizes(self, chunk_size):
        assert validate_chunk_size(chunk_size) == chunk_size

    @pytest.mark.parametrize("chunk_size", [0, -CHUNK, 1000, CHUNK + 1])
    def test_invalid_chunk_sizes(self, chunk_size):
        with pytest.raises(ConfigError):
            validate_chunk_size(chunk_size)

    def test_driver_rejects_invalid_chunk_size(self):
        with pytest.raises(ConfigError):
            ResumableUploadDriver(FakeUploadServer(0), chunk_size=1000)
