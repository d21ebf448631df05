"""Unit tests for the platform stability policy."""

import pytest

from voicediary.capture.stability import (
    CaptureMode,
    PlatformFingerprint,
    STANDARD_POLICY,
    StabilityPolicy,
    UNSTABLE_PLATFORM_POLICY,
    is_known_unstable_platform,
    platform_warning,
    policy_for,
    recommended_capture_mode,
)


IOS_SAFARI = PlatformFingerprint(os="ios", browser_family="safari")
IOS_PWA = PlatformFingerprint(os="iOS", browser_family="webkit", standalone=True)
ANDROID_CHROME = PlatformFingerprint(os="android", browser_family="chrome")


@pytest.mark.unit
class TestStabilityPolicy:
    """Test cases for policy selection."""

    @pytest.mark.parametrize("fingerprint,unstable", [
        (IOS_SAFARI, True),
        (IOS_PWA, True),
        (PlatformFingerprint(os="ipados", browser_family="Safari"), True),
        (PlatformFingerprint(os="ios", browser_family="chrome"), False),
        (ANDROID_CHROME, False),
        (PlatformFingerprint(os="macos", browser_family="safari"), False),
    ])
    def test_known_unstable_platforms(self, fingerprint, unstable):
        assert is_known_unstable_platform(fingerprint) is unstable

    def test_policy_for_unstable_platform(self):
        policy = policy_for(IOS_SAFARI)

        assert policy is UNSTABLE_PLATFORM_POLICY
        assert policy.max_restarts == 3
        assert policy.restart_window_ms == 20000
        assert policy.silence_threshold_ms == 1500

    def test_policy_for_unknown_platform(self):
        assert policy_for(None) is STANDARD_POLICY
        assert policy_for(ANDROID_CHROME) is STANDARD_POLICY

    def test_overrides(self):
        policy = policy_for(IOS_SAFARI, max_restarts=5)

        assert policy.max_restarts == 5
        assert policy.name == "unstable-platform"
        assert UNSTABLE_PLATFORM_POLICY.max_restarts == 3

    @pytest.mark.parametrize("overrides", [
        {"max_restarts": -1},
        {"restart_window_ms": 0},
        {"silence_check_interval_ms": 0},
        {"restart_delay_ms": -5},
    ])
    def test_invalid_policy(self, overrides):
        with pytest.raises(ValueError):
            STANDARD_POLICY.with_overrides(**overrides)

    def test_field_names(self):
        names = StabilityPolicy.field_names()

        assert "max_restarts" in names
        assert "silence_threshold_ms" in names
        assert "name" not in names

    def test_recommended_capture_mode(self):
        assert recommended_capture_mode(IOS_SAFARI) is CaptureMode.HOLD_TO_TALK
        assert recommended_capture_mode(ANDROID_CHROME) is CaptureMode.STANDARD
        unsupported = PlatformFingerprint(os="linux", browser_family="firefox", speech_supported=False)
        assert recommended_capture_mode(unsupported) is CaptureMode.DICTATION_ONLY

    def test_platform_warning(self):
        assert "iOS Safari" in platform_warning(IOS_SAFARI)
        assert "PWA" in platform_warning(IOS_PWA)
        assert platform_warning(ANDROID_CHROME) is None
