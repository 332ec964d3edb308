#!/usr/bin/env python3
"""
Syllable - Profile Infrastructure
プロフィール：オンボーディングの下書きと送信
"""

from .onboarding import OnboardingAssembler, OnboardingResult

__all__ = [
    "OnboardingAssembler",
    "OnboardingResult",
]
