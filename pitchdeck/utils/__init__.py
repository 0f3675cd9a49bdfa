"""PitchDeck AI - ユーティリティ"""
