from ajax_bridge.core.config.app_config import BridgeConfig

__all__ = ["BridgeConfig"]
