"""Tests for the wheel detector."""

from types import SimpleNamespace

import pytest

from src.detection import (
    DetectionOptions,
    Strategy,
    WheelDetector,
    detect_wheel_strategies,
    generate_wheel_suggestions,
)
from src.detection.models import RiskLevel, RiskTolerance
from src.exceptions import InvalidInputError
from src.positions import normalize_positions
from src.positions.models import Confidence, OptionType


@pytest.fixture
def options(as_of) -> DetectionOptions:
    return DetectionOptions(as_of=as_of)


class TestDetect:
    """Tests for portfolio-level detection."""

    def test_covered_call_from_raw_records(self, as_of) -> None:
        """100 shares plus a short call 20 days out is a high-confidence covered call."""
        positions = normalize_positions(
            [
                {"symbol": "AAPL", "quantity": 100, "market_value": 17000, "average_price": 165},
                {
                    "symbol": "AAPL  250121C00180000",
                    "quantity": -1,
                    "market_value": -150,
                    "average_price": 2.0,
                },
            ]
        )

        results = detect_wheel_strategies(positions, DetectionOptions(as_of=as_of))

        assert len(results) == 1
        result = results[0]
        assert result.ticker == "AAPL"
        assert result.strategy == Strategy.COVERED_CALL
        assert result.confidence == Confidence.HIGH
        assert result.confidence_score == 70.0
        assert result.description == "Covered call position: 100 shares with 1 short call(s)"

    def test_full_wheel_takes_priority(self, make_stock, make_option, options) -> None:
        """Shares with a short call and a short put are one full wheel result."""
        positions = [
            make_stock(),
            make_option(option_type=OptionType.CALL),
            make_option(option_type=OptionType.PUT, strike=160.0),
        ]

        results = detect_wheel_strategies(positions, options)

        assert [r.strategy for r in results] == [Strategy.FULL_WHEEL]
        assert results[0].cash_required == 16000.0

    def test_naked_stock_needs_round_lot(self, make_stock, options) -> None:
        """100 shares are actionable, 50 are not."""
        assert detect_wheel_strategies([make_stock(shares=100)], options)[0].strategy == (
            Strategy.NAKED_STOCK
        )
        assert detect_wheel_strategies([make_stock(shares=50)], options) == []

    def test_empty_portfolio(self, options) -> None:
        """No positions, no results."""
        assert detect_wheel_strategies([], options) == []

    def test_ordered_by_strategy(self, make_stock, make_option, options) -> None:
        """Results are ordered most complete strategy first."""
        positions = [
            make_stock("MSFT"),
            make_option("TSLA", OptionType.PUT, strike=200.0),
            make_stock("NVDA"),
            make_option("NVDA", OptionType.CALL),
            make_stock("AAPL"),
            make_option("AAPL", OptionType.CALL),
            make_option("AAPL", OptionType.PUT),
        ]

        results = detect_wheel_strategies(positions, options)

        assert [(r.ticker, r.strategy) for r in results] == [
            ("AAPL", Strategy.FULL_WHEEL),
            ("NVDA", Strategy.COVERED_CALL),
            ("TSLA", Strategy.CASH_SECURED_PUT),
            ("MSFT", Strategy.NAKED_STOCK),
        ]

    def test_score_breaks_ties_within_strategy(self, make_option, options) -> None:
        """Within a strategy, higher confidence score comes first."""
        positions = [
            make_option("AAPL", OptionType.PUT, days=20),
            make_option("MSFT", OptionType.PUT, days=45),
        ]

        results = detect_wheel_strategies(positions, options)

        assert [r.ticker for r in results] == ["MSFT", "AAPL"]
        assert results[0].confidence_score > results[1].confidence_score

    def test_equal_scores_keep_input_order(self, make_stock, options) -> None:
        """Equal scores keep first-seen ticker order."""
        results = detect_wheel_strategies([make_stock("MSFT"), make_stock("AAPL")], options)
        assert [r.ticker for r in results] == ["MSFT", "AAPL"]

    def test_ticker_filter_is_case_insensitive(self, make_stock, options) -> None:
        """Only requested tickers are analyzed."""
        options.tickers = ["msft"]

        results = detect_wheel_strategies([make_stock("AAPL"), make_stock("MSFT")], options)

        assert [r.ticker for r in results] == ["MSFT"]

    def test_rejects_non_list(self) -> None:
        """A non-list input is a caller error."""
        with pytest.raises(InvalidInputError):
            detect_wheel_strategies("AAPL")

    def test_inputs_not_mutated(self, make_stock, make_option, options) -> None:
        """Detection leaves the caller's list untouched."""
        positions = [make_stock(), make_option()]
        snapshot = list(positions)

        detect_wheel_strategies(positions, options)

        assert positions == snapshot


class TestGracefulDegradation:
    """Tests for low-confidence records."""

    def test_unparseable_option_does_not_block_detection(self, as_of) -> None:
        """A garbage option is shown but does not change the classification."""
        positions = normalize_positions(
            [
                {"symbol": "AAPL", "quantity": 100, "market_value": 17000, "average_price": 165},
                {
                    "symbol": "AAPL  250121C00180000",
                    "quantity": -1,
                    "market_value": -150,
                    "average_price": 2.0,
                },
                {
                    "symbol": "???",
                    "asset_type": "OPTION",
                    "underlying_symbol": "AAPL",
                    "quantity": -1,
                    "market_value": -90,
                },
            ]
        )

        results = detect_wheel_strategies(positions, DetectionOptions(as_of=as_of))

        assert len(results) == 1
        result = results[0]
        assert result.strategy == Strategy.COVERED_CALL
        assert result.confidence_score == 70.0
        assert len(result.positions) == 3
        assert [p.confidence for p in result.positions].count(Confidence.LOW) == 1

    def test_only_low_confidence_records(self, make_stock, options) -> None:
        """A ticker with nothing usable yields no result."""
        positions = [make_stock(shares=100, confidence=Confidence.LOW)]
        assert detect_wheel_strategies(positions, options) == []


class TestCashValidation:
    """Tests for cash requirements on put-backed strategies."""

    @pytest.mark.parametrize(
        "balance,expected",
        [(20000.0, True), (19000.0, True), (10000.0, False), (0.0, None)],
    )
    def test_cash_validated(self, make_option, as_of, balance, expected) -> None:
        """Validation compares the balance to collateral; no balance means unknown."""
        put = make_option(option_type=OptionType.PUT, strike=190.0)

        result = detect_wheel_strategies(
            [put], DetectionOptions(cash_balance=balance, as_of=as_of)
        )[0]

        assert result.cash_required == 19000.0
        assert result.cash_validated is expected

    def test_covered_call_needs_no_cash(self, make_stock, make_option, as_of) -> None:
        """Covered calls carry no collateral requirement."""
        result = detect_wheel_strategies(
            [make_stock(), make_option()], DetectionOptions(cash_balance=5000, as_of=as_of)
        )[0]

        assert result.cash_required == 0.0
        assert result.cash_validated is None


class TestDetectionResult:
    """Tests for result content and serialization."""

    def test_recommendations_and_actions(self, make_stock, options) -> None:
        """Each result carries recommendations and prioritized actions."""
        result = detect_wheel_strategies([make_stock()], options)[0]

        assert "Consider selling covered calls to generate income" in result.recommendations
        assert [a.action for a in result.potential_actions] == ["sell_call", "start_wheel"]
        assert result.potential_actions[0].priority == "high"

    def test_risk_attached(self, make_stock, make_option, options) -> None:
        """Risk follows the nearest short expiration."""
        result = detect_wheel_strategies([make_stock(), make_option(days=3)], options)[0]
        assert result.risk_assessment.level == RiskLevel.HIGH

    def test_to_dict(self, make_stock, make_option, options) -> None:
        """Results serialize to plain JSON-ready values."""
        result = detect_wheel_strategies([make_stock(), make_option()], options)[0]

        data = result.to_dict()

        assert data["strategy"] == "covered_call"
        assert data["confidence"] == "high"
        assert data["risk_assessment"]["level"] == "medium"
        call = next(p for p in data["positions"] if p["type"] == "call")
        assert call["position"] == "short"
        assert call["expiration_date"] == "2025-01-21"
        assert call["days_to_expiration"] == 20


class TestWheelDetector:
    """Tests for detector configuration."""

    def test_from_settings(self) -> None:
        """Thresholds and the default tolerance are taken from settings."""
        settings = SimpleNamespace(
            near_expiry_days=10,
            moderate_expiry_days=30,
            long_horizon_days=40,
            elevated_volatility=0.4,
            concentration_threshold_pct=50.0,
            risk_tolerance="conservative",
        )

        detector = WheelDetector.from_settings(settings)

        assert detector.near_expiry_days == 10
        assert detector.moderate_expiry_days == 30
        assert detector.concentration_threshold_pct == 50.0
        assert detector.weights.long_horizon_days == 40
        assert detector.weights.volatility_threshold == 0.4
        assert detector.default_risk_tolerance == RiskTolerance.CONSERVATIVE

    def test_default_tolerance_applies(self, make_stock, make_option, options) -> None:
        """Options without a tolerance use the detector's default."""
        detector = WheelDetector(default_risk_tolerance=RiskTolerance.CONSERVATIVE)

        result = detector.detect([make_stock(), make_option()], options)[0]

        assert result.risk_assessment.level == RiskLevel.HIGH
        assert any("Conservative" in f for f in result.risk_assessment.factors)

    def test_explicit_tolerance_overrides_default(self, make_stock, make_option, as_of) -> None:
        """A tolerance named in the options wins over the detector's default."""
        detector = WheelDetector(default_risk_tolerance=RiskTolerance.CONSERVATIVE)
        options = DetectionOptions(as_of=as_of, risk_tolerance=RiskTolerance.AGGRESSIVE)

        result = detector.detect([make_stock(), make_option()], options)[0]

        assert result.risk_assessment.level == RiskLevel.MEDIUM
        assert any("Aggressive" in f for f in result.risk_assessment.factors)

    def test_analyze_ticker_no_match(self, make_option, options) -> None:
        """Long options alone are not a strategy."""
        detector = WheelDetector()
        assert detector.analyze_ticker("AAPL", [make_option(contracts=1)], options) is None


class TestGenerateWheelSuggestions:
    """Tests for generate_wheel_suggestions."""

    def test_csp(self, make_option, options) -> None:
        """A CSP maps to a new CSP cycle with its puts."""
        result = detect_wheel_strategies([make_option(option_type=OptionType.PUT)], options)[0]

        [suggestion] = generate_wheel_suggestions(result)

        assert suggestion.action == "create_csp_cycle"
        assert suggestion.params["ticker"] == "AAPL"
        assert len(suggestion.params["puts"]) == 1

    def test_covered_call(self, make_stock, make_option, options) -> None:
        """A covered call maps to a CC cycle with its stock and calls."""
        result = detect_wheel_strategies([make_stock(), make_option()], options)[0]

        [suggestion] = generate_wheel_suggestions(result)

        assert suggestion.action == "create_cc_cycle"
        assert len(suggestion.params["stocks"]) == 1
        assert len(suggestion.params["calls"]) == 1

    def test_full_wheel(self, make_stock, make_option, options) -> None:
        """A full wheel imports all positions."""
        positions = [make_stock(), make_option(), make_option(option_type=OptionType.PUT)]
        result = detect_wheel_strategies(positions, options)[0]

        [suggestion] = generate_wheel_suggestions(result)

        assert suggestion.action == "create_full_wheel"
        assert len(suggestion.params["all_positions"]) == 3

    def test_naked_stock(self, make_stock, options) -> None:
        """Naked stock starts a new wheel with its share count."""
        result = detect_wheel_strategies([make_stock(shares=200)], options)[0]

        [suggestion] = generate_wheel_suggestions(result)

        assert suggestion.action == "start_new_wheel"
        assert suggestion.params["shares"] == 200
