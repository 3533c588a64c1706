"""Keyword tables used by the segment classifier.

Each table is matched as a case-insensitive substring against a clause.
Tables mix Chinese and English keywords.  Single-character Chinese keywords
are deliberately few: they match very broadly and only win when no longer
keyword in a competing table matches the same clause.

Keywords that are substrings of common words in another category are kept
out of the earlier tiers.  For example ``风`` is not a weather keyword
because it would capture ``风格`` (style), and ``night`` is spelled out as
``at night``/``nighttime`` so that ``knight`` is not classified as time.
"""

TIME_KEYWORDS: tuple[str, ...] = (
    # Chinese
    "早上",
    "早晨",
    "清晨",
    "黎明",
    "拂晓",
    "上午",
    "中午",
    "正午",
    "午后",
    "下午",
    "傍晚",
    "黄昏",
    "日落",
    "日出",
    "晚上",
    "夜晚",
    "夜里",
    "深夜",
    "午夜",
    "半夜",
    "凌晨",
    "白天",
    "春天",
    "夏天",
    "秋天",
    "冬天",
    "节日",
    "新年",
    "除夕",
    # English
    "morning",
    "noon",
    "afternoon",
    "evening",
    "at night",
    "nighttime",
    "tonight",
    "midnight",
    "dawn",
    "dusk",
    "sunrise",
    "sunset",
    "twilight",
    "daytime",
    "summer",
    "winter",
    "autumn",
)

WEATHER_KEYWORDS: tuple[str, ...] = (
    # Chinese
    "晴天",
    "晴朗",
    "万里无云",
    "多云",
    "阴天",
    "下雨",
    "雨天",
    "小雨",
    "大雨",
    "暴雨",
    "细雨",
    "雷雨",
    "打雷",
    "闪电",
    "下雪",
    "雪花",
    "大雪",
    "暴风雪",
    "雾",
    "雾霾",
    "刮风",
    "大风",
    "微风",
    "狂风",
    "台风",
    "彩虹",
    "冰雹",
    # English
    "sunny",
    "cloudy",
    "overcast",
    "rain",
    "drizzle",
    "storm",
    "thunder",
    "lightning",
    "snow",
    "fog",
    "mist",
    "windy",
    "breeze",
    "rainbow",
    "hail",
)

STYLE_KEYWORDS: tuple[str, ...] = (
    # Chinese
    "风格",
    "画风",
    "水彩",
    "油画",
    "素描",
    "速写",
    "卡通",
    "动漫",
    "漫画",
    "写实",
    "插画",
    "像素",
    "水墨",
    "国风",
    "绘本",
    "剪纸",
    "赛博朋克",
    "蒸汽朋克",
    "扁平",
    "渲染",
    "高清",
    "电影感",
    # English
    "style",
    "watercolor",
    "watercolour",
    "oil painting",
    "sketch",
    "cartoon",
    "anime",
    "manga",
    "photorealistic",
    "realistic",
    "illustration",
    "pixel art",
    "ink wash",
    "cyberpunk",
    "steampunk",
    "3d render",
    "cinematic",
)

SCENE_KEYWORDS: tuple[str, ...] = (
    # Chinese
    "在",
    "位于",
    "场景",
    "环境",
    "室内",
    "室外",
    "户外",
    "城市",
    "乡村",
    "村庄",
    "森林",
    "树林",
    "海边",
    "沙滩",
    "大海",
    "山上",
    "山顶",
    "天空",
    "街道",
    "街头",
    "公园",
    "花园",
    "学校",
    "教室",
    "家里",
    "房间",
    "厨房",
    "草地",
    "草原",
    "河边",
    "湖边",
    "城堡",
    "宫殿",
    "沙漠",
    "太空",
    # English
    "scene",
    "indoor",
    "outdoor",
    "city",
    "village",
    "forest",
    "woods",
    "beach",
    "ocean",
    "mountain",
    "sky",
    "street",
    "park",
    "garden",
    "school",
    "classroom",
    "room",
    "kitchen",
    "meadow",
    "river",
    "lake",
    "castle",
    "palace",
    "desert",
)

ACTION_KEYWORDS: tuple[str, ...] = (
    # Chinese
    "做",
    "正在",
    "进行",
    "行走",
    "散步",
    "奔跑",
    "跑步",
    "跳跃",
    "坐着",
    "站立",
    "站着",
    "躺着",
    "看着",
    "望着",
    "拿着",
    "穿着",
    "带着",
    "抱着",
    "牵着",
    "唱歌",
    "跳舞",
    "画画",
    "读书",
    "玩耍",
    "飞翔",
    "游泳",
    "吃",
    "喝",
    "走",
    "跑",
    "跳",
    "笑",
    # English
    "running",
    "walking",
    "jumping",
    "sitting",
    "standing",
    "lying",
    "looking",
    "holding",
    "wearing",
    "carrying",
    "hugging",
    "singing",
    "dancing",
    "reading",
    "playing",
    "flying",
    "swimming",
    "eating",
    "drinking",
)

CHARACTER_KEYWORDS: tuple[str, ...] = (
    # Chinese
    "人",
    "角色",
    "主角",
    "男孩",
    "女孩",
    "孩子",
    "小孩",
    "少年",
    "少女",
    "老人",
    "爷爷",
    "奶奶",
    "妈妈",
    "爸爸",
    "公主",
    "王子",
    "小猫",
    "小狗",
    "兔子",
    # English
    "character",
    "person",
    "boy",
    "girl",
    "child",
    "kid",
    "man",
    "woman",
    "princess",
    "prince",
    "grandpa",
    "grandma",
)

BACKGROUND_KEYWORDS: tuple[str, ...] = (
    # Chinese
    "背景",
    "远处",
    "远景",
    "背后",
    "身后",
    "衬托",
    "底色",
    # English
    "background",
    "backdrop",
    "distance",
    "behind",
)
