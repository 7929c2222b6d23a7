from .executor import BridgeExecutor as BridgeExecutor
