from .quickjs_executor import NATIVE_CODE_SENTINEL, QuickJsScriptExecutor, SandboxedSigner

__all__ = ["NATIVE_CODE_SENTINEL", "QuickJsScriptExecutor", "SandboxedSigner"]
