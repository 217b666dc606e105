"""
手相解读的界面状态
"""
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any


class ReadingPhase:
    """三种互斥的阶段"""
    EMPTY = "empty"      # 还没有图片
    IMAGE = "image"      # 有图片，没有结果
    RESULT = "result"    # 有图片和结果


@dataclass
class ReadingState:
    """ReadingController 持有的全部状态

    只能通过 ReadingController 的命名转换修改
    """
    captured_image: Optional[str] = None    # data URL
    analysis_result: Optional[str] = None   # markdown 文本
    loading: bool = False                   # 是否有分析请求在进行
    error: Optional[str] = None             # 行内错误提示
    copy_message: Optional[str] = None      # 复制结果的临时提示

    @property
    def phase(self) -> str:
        if self.captured_image is None:
            return ReadingPhase.EMPTY
        if self.analysis_result is None:
            return ReadingPhase.IMAGE
        return ReadingPhase.RESULT

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典

        图片本身不放进字典，只标记是否存在，图片内容通过单独的接口获取
        """
        data = asdict(self)
        del data["captured_image"]
        data["has_image"] = self.captured_image is not None
        data["phase"] = self.phase
        return data
