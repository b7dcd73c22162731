from mcp.types import Tool

_SET_CODE = {"type": "string", "description": "系列代码，例如 'NEO'、'MOM'"}
_PAGE = {"type": "integer", "description": "页码 (默认 1)"}
_PAGE_SIZE = {"type": "integer", "description": "每页数量 (默认 20，最大 100)"}
_PRIORITY_CHINESE = {"type": "boolean", "description": "是否优先显示中文卡牌 (默认 true)"}

SEARCH_DESCRIPTION = (
    "通过查询字符串搜索卡牌，支持分页和排序。\n\n"
    "**查询语法示例:**\n"
    "- `t:creature c:r` (红色生物)\n"
    "- `pow>=5 or mv<2` (力量大于等于5或法术力值小于2)\n"
    "- `o:\"draw a card\" -c:u` (包含\"抓一张牌\"的非蓝色牌)\n"
    "- `(t:instant or t:sorcery) mv<=3` (3费或以下的瞬间或法术)\n\n"
    "**分页参数:**\n"
    "- `page`: 页码 (整数, 默认 1)\n"
    "- `page_size`: 每页数量 (整数, 默认 20, 最大 100)\n\n"
    "**排序参数:**\n"
    "- `order`: 按字段排序，逗号分隔。前缀 `-` 表示降序\n"
    "  (例如: `name`, `-mv`, `name,-rarity`)\n"
    "  默认排序: `name`\n\n"
    "**其他参数:**\n"
    "- `unique`: 去重方式 (id, oracle_id, illustration_id)\n"
    "- `priority_chinese`: 是否优先显示中文卡牌"
)

SBWSZ_TOOLS: tuple[Tool, ...] = (
    Tool(
        name="get_card_by_set_and_number",
        description="通过系列代码和收集编号获取单张卡牌。",
        inputSchema={
            "type": "object",
            "properties": {
                "set": _SET_CODE,
                "collector_number": {
                    "type": "string",
                    "description": "收集编号，例如 '1'、'112'、'1a'",
                },
            },
            "required": ["set", "collector_number"],
        },
    ),
    Tool(
        name="search_cards",
        description=SEARCH_DESCRIPTION,
        inputSchema={
            "type": "object",
            "properties": {
                "q": {
                    "type": "string",
                    "description": "查询字符串，例如 't:creature c:r'、'pow>=5 or mv<2'、's:TDM -t:creature'",
                },
                "page": _PAGE,
                "page_size": _PAGE_SIZE,
                "order": {"type": "string", "description": "排序字段 (例如: name, -mv, rarity)"},
                "unique": {
                    "type": "string",
                    "description": "去重方式: id(不去重), oracle_id(按卡牌名去重), illustration_id(按插图去重)",
                },
                "priority_chinese": _PRIORITY_CHINESE,
            },
            "required": ["q"],
        },
    ),
    Tool(
        name="get_sets",
        description="返回所有MTG卡牌系列的完整数据，按发布日期降序排列",
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    Tool(
        name="get_set",
        description="根据系列代码获取单个系列的详细信息",
        inputSchema={
            "type": "object",
            "properties": {"set_code": _SET_CODE},
            "required": ["set_code"],
        },
    ),
    Tool(
        name="get_set_cards",
        description="获取特定系列的所有卡牌，支持分页和排序。",
        inputSchema={
            "type": "object",
            "properties": {
                "set_code": _SET_CODE,
                "page": _PAGE,
                "page_size": _PAGE_SIZE,
                "order": {
                    "type": "string",
                    "description": "排序字段 (例如: collector_number, name, -mv)",
                },
                "priority_chinese": _PRIORITY_CHINESE,
            },
            "required": ["set_code"],
        },
    ),
    Tool(
        name="hzls",
        description="活字乱刷：用卡牌上的文字拼出目标句子，返回合成的图片。",
        inputSchema={
            "type": "object",
            "properties": {
                "target_sentence": {
                    "type": "string",
                    "description": "要拼出的目标句子，例如 '我抓一张牌'",
                },
            },
            "required": ["target_sentence"],
        },
    ),
)

TOOL_NAMES = frozenset(tool.name for tool in SBWSZ_TOOLS)


def list_tools() -> list[Tool]:
    return list(SBWSZ_TOOLS)
