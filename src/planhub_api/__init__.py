"""协作策划平台接口服务。"""
