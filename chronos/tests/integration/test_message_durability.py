"""重启持久性：已接受的审议消息在重新装配后仍可读取"""

from httpx import ASGITransport, AsyncClient


class TestMessageDurability:
    async def test_messages_survive_restart(
        self, client: AsyncClient, integration_app, rebuild_app, ledger, make_log, agents, clock
    ):
        ledger.add_log(make_log.created(0, block=1))
        for agent in agents:
            ledger.add_log(make_log.joined(0, agent.address, block=2, timestamp=clock.now()))
        await integration_app.state.poller.tick()

        for i, agent in enumerate(agents):
            resp = await client.post("/tasks/0/messages", json=agent.post_body(0, f"note {i}"))
            assert resp.status_code == 201
        before = (await client.get("/tasks/0/messages")).json()
        await integration_app.state.message_store.close()

        restarted = await rebuild_app()
        async with AsyncClient(
            transport=ASGITransport(app=restarted), base_url="http://test"
        ) as ac:
            # 任务快照需要重新同步，消息直接从文件恢复
            assert (await ac.get("/tasks/0")).status_code == 404
            assert (await ac.get("/tasks/0/messages")).json() == before

            await restarted.state.poller.tick()
            detail = (await ac.get("/tasks/0")).json()
            assert detail["messages"] == before
        await restarted.state.message_store.close()
