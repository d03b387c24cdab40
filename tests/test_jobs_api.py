"""
test_jobs_api.py — Background job endpoints against an in-memory arq pool.

Covers:
  - enqueueing the report PDF job (tenant scoping, unknown order)
  - status mapping of arq job states
  - completed results, failed jobs and cross-tenant lookups
"""

from arq.jobs import JobStatus


class TestEnqueueReportPdf:

    def test_queues_job_with_tenant(self, client, seed, make_order, arq_pool):
        order = make_order(status="completed")
        response = client.post(f"/orders/{order.id}/report-pdf/jobs")
        assert response.status_code == 202
        body = response.json()
        assert body["status"] == "queued"

        queued = arq_pool.jobs[body["jobId"]]
        assert queued.function == "generate_report_pdf_task"
        assert queued.kwargs == {"order_id": order.id, "tenant_id": seed.tenant.id}
        assert arq_pool.closed == 1

    def test_unknown_order_is_404(self, client, seed, arq_pool):
        assert client.post("/orders/999/report-pdf/jobs").status_code == 404
        assert arq_pool.jobs == {}


class TestJobStatus:

    def test_status_mapping(self, client, seed, arq_pool):
        owned = {"tenant_id": seed.tenant.id}
        arq_pool.add("deferred", JobStatus.deferred, owned)
        arq_pool.add("queued", JobStatus.queued, owned)
        arq_pool.add("running", JobStatus.in_progress, owned)

        assert client.get("/jobs/status/deferred").json()["status"] == "queued"
        assert client.get("/jobs/status/queued").json()["status"] == "queued"
        running = client.get("/jobs/status/running").json()
        assert running == {"jobId": "running", "status": "in_progress", "result": None, "error": None}

    def test_unknown_job_is_404(self, client, seed, arq_pool):
        assert client.get("/jobs/status/missing").status_code == 404

    def test_completed_job_returns_result(self, client, seed, arq_pool):
        result = {"orderId": 1, "tenantId": seed.tenant.id, "url": "https://r2.test/report.pdf"}
        arq_pool.add("done", JobStatus.complete, {"tenant_id": seed.tenant.id}, result=result)
        body = client.get("/jobs/status/done").json()
        assert body["status"] == "complete"
        assert body["result"]["url"] == "https://r2.test/report.pdf"

    def test_non_dict_result_is_wrapped(self, client, seed, arq_pool):
        arq_pool.add("plain", JobStatus.complete, {"tenant_id": seed.tenant.id}, result=3)
        assert client.get("/jobs/status/plain").json()["result"] == {"data": 3}

    def test_failed_job_reports_error(self, client, seed, arq_pool):
        arq_pool.add(
            "broken", JobStatus.complete, {"tenant_id": seed.tenant.id}, result=RuntimeError("no work log")
        )
        body = client.get("/jobs/status/broken").json()
        assert body["status"] == "failed"
        assert body["error"] == "no work log"

    def test_other_tenant_job_is_hidden(self, client, seed, arq_pool):
        arq_pool.add("foreign", JobStatus.complete, {"tenant_id": seed.tenant.id + 1}, result={"url": "x"})
        arq_pool.add("cron", JobStatus.complete, {}, result={"expired": 2})
        assert client.get("/jobs/status/foreign").status_code == 404
        assert client.get("/jobs/status/cron").status_code == 404
