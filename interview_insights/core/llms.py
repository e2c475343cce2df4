import logging
from typing import Optional

from langchain_openai import ChatOpenAI

from ..config import Settings

logger = logging.getLogger(__name__)


# ============================================================================
# 动态 LLM 创建
# ============================================================================

def create_llm_from_config(
    api_key: str,
    base_url: str,
    model: str,
    temperature: float = 0.3,
    max_tokens: int = 8192
) -> ChatOpenAI:
    """
    根据配置创建 LLM 实例

    Args:
        api_key: API Key
        base_url: API Base URL
        model: 模型名称
        temperature: 温度参数
        max_tokens: 最大 token 数

    Returns:
        ChatOpenAI: LLM 实例
    """
    return ChatOpenAI(
        temperature=temperature,
        max_tokens=max_tokens,
        model_name=model,
        api_key=api_key,
        base_url=base_url
    )


def get_llm_for_settings(settings: Settings, api_config: Optional[dict] = None) -> ChatOpenAI:
    """
    获取用于转录分析的 LLM 实例

    优先使用请求方传入的 smart 通道配置，其次使用服务配置。

    Args:
        settings: 服务配置
        api_config: 请求方的 API 配置，结构为 { smart: {...} }

    Returns:
        ChatOpenAI: LLM 实例

    Raises:
        ValueError: 两处都没有可用配置
    """
    channel_config = (api_config or {}).get("smart")
    if channel_config and channel_config.get("api_key"):
        logger.info(f"[LLM] 使用请求方 API 配置: {channel_config.get('model')}")
        return create_llm_from_config(
            api_key=channel_config["api_key"],
            base_url=channel_config["base_url"],
            model=channel_config["model"],
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens
        )

    if not settings.llm_configured:
        raise ValueError("未检测到 LLM 配置。请设置 SMART_LLM_API_KEY / SMART_LLM_BASE_URL / SMART_LLM_MODEL。")

    return create_llm_from_config(
        api_key=settings.llm_api_key,
        base_url=settings.llm_base_url,
        model=settings.llm_model,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens
    )
