from termcoder.tools.ls_tool import LsTool
from termcoder.tools.view_tool import ViewTool
from termcoder.tools.write_tool import WriteTool

__all__ = ["LsTool", "ViewTool", "WriteTool"]
