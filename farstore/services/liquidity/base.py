"""流动性解析器接口"""

from abc import ABC, abstractmethod


class LiquidityResolver(ABC):
    """流动性解析器基类

    不同部署读取流动性的方式不同（直接读池子 / 汇总行情聚合器），
    统一为 resolve_liquidity(token) -> float，由配置选择实现。

    结果以参考资产计价，已从最小单位换算为浮点数，始终 >= 0。
    """

    name: str

    @abstractmethod
    async def resolve_liquidity(self, token: str) -> float:
        """计算代币的流动性

        Args:
            token: 代币合约地址

        Returns:
            参考资产一侧的流动性，没有池子时为 0.0

        Raises:
            LiquiditySourceUnavailable: 数据源不可用
        """

    async def close(self) -> None:
        """释放资源"""
        return None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name}>"
