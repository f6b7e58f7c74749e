"""
确认码生成器

模拟的一次性验证码通道：6位，取自 A-Z0-9 共36个字符（约31位熵）。
不做唯一性校验，不可作为真实授权凭据。
"""
import secrets
import string
from typing import Protocol

CONFIRMATION_ALPHABET = string.ascii_uppercase + string.digits
CONFIRMATION_CODE_LENGTH = 6


class ConfirmationCodeGenerator(Protocol):
    def generate(self) -> str:
        ...


class RandomConfirmationCodeGenerator:
    """均匀随机的确认码生成器"""

    def __init__(self, length: int = CONFIRMATION_CODE_LENGTH, alphabet: str = CONFIRMATION_ALPHABET):
        self.length = length
        self.alphabet = alphabet

    def generate(self) -> str:
        return "".join(secrets.choice(self.alphabet) for _ in range(self.length))
