"""ルール有効化設定モデル。"""

from pydantic import BaseModel, ConfigDict, Field


class Settings(BaseModel):
    """各ルールの有効/無効とバッファサイズ上限。

    解析開始前に一度だけ構築し、以後は変更しない（frozen）。
    golangci-lint形式のキャメルケース名でも指定できる。
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    check_unbuffered_channels: bool = Field(
        default=False,
        alias="checkUnbufferedChannels",
        description="バッファなしチャネルの生成を報告する",
    )
    check_buffer_amount: int = Field(
        default=0,
        ge=0,
        alias="checkBufferAmount",
        description="バッファサイズの上限（0で無効）",
    )
    check_blocking_sends: bool = Field(
        default=True,
        alias="checkBlockingSends",
        description="フォールバックのない送信を報告する",
    )
