"""
==============================================================================
Decoder Tests
==============================================================================

Tests for symbology priority, multi-symbol mode, blank frames and the
decode time budget. Backends are replaced by a lookup table except in the
QR round trip tests.

==============================================================================
"""

import pytest

from bistro_scan.core.exceptions import DecodeTimeoutError, InvalidFrameError
from bistro_scan.scanner import BarcodeDecoder, RawFrame, Symbology
from bistro_scan.scanner.symbology import HANDLERS, DecodeStrategy, zbar_confidence

from conftest import FakeClock, blank_frame, busy_frame, qr_frame


class TestDecodeDispatch:
    """Priority order and stopping rules."""

    def test_empty_when_nothing_found(self, fake_backends):
        assert BarcodeDecoder().decode_all(busy_frame()) == []

    def test_qr_wins_over_1d(self, fake_backends):
        fake_backends[Symbology.CODE128] = [b"SKU-FRIES01"]
        fake_backends[Symbology.QR] = [b"123456"]

        symbols = BarcodeDecoder().decode_all(busy_frame())

        assert len(symbols) == 1
        assert symbols[0].symbology == Symbology.QR
        assert symbols[0].payload == b"123456"
        assert symbols[0].confidence == 1.0

    def test_multi_symbol_keeps_priority_order(self, fake_backends):
        fake_backends[Symbology.EAN13] = [b"4006381333931"]
        fake_backends[Symbology.QR] = [b"123456", b"204518"]
        fake_backends[Symbology.CODE128] = [b"SKU-FRIES01"]

        symbols = BarcodeDecoder(multi_symbol=True).decode_all(busy_frame())

        assert [s.symbology for s in symbols] == [
            Symbology.QR, Symbology.QR, Symbology.CODE128, Symbology.EAN13
        ]

    def test_duplicate_hits_collapse(self, fake_backends):
        fake_backends[Symbology.QR] = [b"123456", b"123456"]
        symbols = BarcodeDecoder(multi_symbol=True).decode_all(busy_frame())
        assert len(symbols) == 1

    def test_disabled_symbology_is_skipped(self, fake_backends):
        fake_backends[Symbology.QR] = [b"123456"]
        fake_backends[Symbology.CODE39] = [b"SKU-FRIES01"]

        decoder = BarcodeDecoder(symbologies=[Symbology.CODE39])
        symbols = decoder.decode_all(busy_frame())

        assert [s.symbology for s in symbols] == [Symbology.CODE39]

    def test_enabled_order_does_not_change_priority(self):
        decoder = BarcodeDecoder(symbologies=[Symbology.EAN13, Symbology.QR])
        assert decoder.symbologies == (Symbology.QR, Symbology.EAN13)

    def test_failing_backend_falls_through(self, monkeypatch):
        def broken(symbology, gray):
            raise RuntimeError("zbar missing")

        monkeypatch.setitem(HANDLERS, DecodeStrategy.ZBAR, broken)
        monkeypatch.setitem(
            HANDLERS, DecodeStrategy.OPENCV_QR, lambda symbology, gray: [(b"123456", None)]
        )

        symbols = BarcodeDecoder().decode_all(busy_frame())

        assert len(symbols) == 1
        assert symbols[0].payload == b"123456"
        assert symbols[0].confidence is None

    @pytest.mark.parametrize("quality, expected", [
        (5, 1.0), (1, 1.0), (0.5, 0.5), (-3, 0.0), (0, None), (None, None)
    ])
    def test_zbar_quality_clamped(self, quality, expected):
        assert zbar_confidence(quality) == expected

    def test_clamped_quality_reaches_symbol(self, monkeypatch):
        monkeypatch.setitem(
            HANDLERS, DecodeStrategy.ZBAR,
            lambda symbology, gray: [(b"123456", zbar_confidence(7))]
        )
        symbols = BarcodeDecoder(symbologies=[Symbology.QR]).decode_all(busy_frame())
        assert symbols[0].confidence == 1.0

    def test_symbology_parse_accepts_zbar_names(self):
        assert Symbology.parse("QRCODE") == Symbology.QR
        assert Symbology.parse("I25") == Symbology.ITF
        assert Symbology.parse(" ean13 ") == Symbology.EAN13
        with pytest.raises(ValueError):
            Symbology.parse("aztec")


class TestBlankAndInvalidFrames:
    """Frames that yield nothing or raise."""

    def test_blank_frame_yields_nothing(self, fake_backends):
        fake_backends[Symbology.QR] = [b"123456"]
        assert BarcodeDecoder().decode_all(blank_frame()) == []

    def test_nearly_blank_frame_yields_nothing(self, fake_backends):
        fake_backends[Symbology.QR] = [b"123456"]
        frame = blank_frame(value=100)
        frame.data[0, 0] = 100 + BarcodeDecoder.BLANK_RANGE
        assert BarcodeDecoder().decode_all(frame) == []

    def test_invalid_frame_raises_at_call_time(self):
        decoder = BarcodeDecoder()
        with pytest.raises(InvalidFrameError):
            decoder.decode(RawFrame(data=b"", width=0, height=0))


class TestDecodeBudget:
    """Time budget with an injected clock."""

    def test_budget_exceeded(self, fake_backends):
        decoder = BarcodeDecoder(timeout_seconds=0.5, clock=FakeClock(step=1.0))
        with pytest.raises(DecodeTimeoutError) as exc_info:
            decoder.decode_all(busy_frame())
        assert exc_info.value.retryable is True
        assert exc_info.value.status_code == 408

    def test_budget_raised_lazily(self, fake_backends):
        decoder = BarcodeDecoder(timeout_seconds=0.5, clock=FakeClock(step=1.0))
        symbols = decoder.decode(busy_frame())
        with pytest.raises(DecodeTimeoutError):
            next(symbols)

    def test_within_budget(self, fake_backends):
        fake_backends[Symbology.EAN8] = [b"96385074"]
        decoder = BarcodeDecoder(timeout_seconds=0.5, clock=FakeClock(step=0.01))
        assert [s.payload for s in decoder.decode_all(busy_frame())] == [b"96385074"]

    def test_slow_last_attempt_overruns(self, monkeypatch):
        clock = FakeClock()

        def slow_zbar(symbology, gray):
            clock.now += 5.0
            return []

        monkeypatch.setitem(HANDLERS, DecodeStrategy.ZBAR, slow_zbar)
        decoder = BarcodeDecoder(
            symbologies=[Symbology.CODE128], timeout_seconds=0.25, clock=clock
        )

        with pytest.raises(DecodeTimeoutError) as exc_info:
            decoder.decode_all(busy_frame())
        assert exc_info.value.details["elapsed_ms"] >= 5000

    def test_slow_hit_is_not_delivered(self, monkeypatch):
        clock = FakeClock()

        def slow_zbar(symbology, gray):
            clock.now += 1.0
            return [(b"SKU-FRIES01", 1.0)]

        monkeypatch.setitem(HANDLERS, DecodeStrategy.ZBAR, slow_zbar)
        decoder = BarcodeDecoder(
            symbologies=[Symbology.CODE128], timeout_seconds=0.25, clock=clock
        )

        with pytest.raises(DecodeTimeoutError):
            next(decoder.decode(busy_frame()))

    def test_no_budget(self, fake_backends):
        decoder = BarcodeDecoder(timeout_seconds=None, clock=FakeClock(step=100.0))
        assert decoder.decode_all(busy_frame()) == []


class TestQRRoundTrip:
    """Real backends on generated QR codes."""

    @pytest.mark.parametrize("payload", ["123456", "000042", "SKU-BURGER01"])
    def test_decodes_generated_qr(self, payload):
        decoder = BarcodeDecoder(symbologies=[Symbology.QR], timeout_seconds=None)
        symbols = decoder.decode_all(qr_frame(payload))

        assert len(symbols) == 1
        assert symbols[0].symbology == Symbology.QR
        assert symbols[0].text == payload
